"""Remote-service transports.

Public API
----------
.. autoclass:: Transport
.. autoclass:: OpenAITransport
.. autoclass:: GeminiTransport
.. autofunction:: build_transport
"""

from __future__ import annotations

from pdfgenai.config import ClientConfig
from pdfgenai.transports.base import Transport, read_upload_bytes
from pdfgenai.transports.gemini_transport import GeminiTransport
from pdfgenai.transports.openai_transport import OpenAITransport

_TRANSPORTS: dict[str, type] = {
    "openai": OpenAITransport,
    "gemini": GeminiTransport,
}


def build_transport(config: ClientConfig) -> Transport:
    """Instantiate the transport named by ``config.provider``.

    Raises:
        RuntimeError: If no API key is configured for the provider.
    """
    cls = _TRANSPORTS[config.provider]
    return cls(
        api_key=config.resolve_api_key(),
        model=config.model,
        base_url=config.base_url,
        timeout=config.request_timeout,
    )


__all__ = [
    "GeminiTransport",
    "OpenAITransport",
    "Transport",
    "build_transport",
    "read_upload_bytes",
]
