"""OpenAI transport.

Thin adapter over :class:`openai.AsyncOpenAI`:

- SDK-level retries are disabled; the client's RetryPolicy owns retrying
- SDK errors are mapped to tagged transient/permanent service errors
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import openai
from openai import AsyncOpenAI

from pdfgenai.errors import ServiceError, TransientServiceError, service_error_for_status
from pdfgenai.models import ChatMessage, ChatResponse, UploadResult
from pdfgenai.transports.base import read_upload_bytes

logger = logging.getLogger(__name__)


def translate_openai_error(exc: Exception) -> ServiceError:
    """Convert an OpenAI SDK exception into a tagged service error.

    Status errors are classified by HTTP status; connection and timeout
    errors carry no status and are transient.
    """
    if isinstance(exc, openai.APIStatusError):
        return service_error_for_status(str(exc), exc.status_code)
    if isinstance(exc, openai.APIConnectionError):
        return TransientServiceError(f"connection error: {exc}")
    status = getattr(exc, "status_code", None)
    return service_error_for_status(str(exc), status)


class OpenAITransport:
    """Uploads files and runs chat completions against the OpenAI API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model
        if client is None:
            client_kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
            if base_url:
                client_kwargs["base_url"] = base_url
            if timeout is not None:
                client_kwargs["timeout"] = timeout
            client = AsyncOpenAI(**client_kwargs)
        self._client = client

    async def create_file(self, path: str, purpose: str) -> UploadResult:
        content = await read_upload_bytes(path)
        logger.debug("Uploading %s (%d bytes, purpose=%s)", path, len(content), purpose)
        try:
            file_obj = await self._client.files.create(
                file=(Path(path).name, content),
                purpose=purpose,
            )
        except openai.APIError as exc:
            raise translate_openai_error(exc) from exc

        return UploadResult(
            file_id=file_obj.id,
            filename=file_obj.filename,
            status=str(getattr(file_obj, "status", None) or "uploaded"),
            purpose=str(getattr(file_obj, "purpose", None) or purpose),
            size_bytes=getattr(file_obj, "bytes", None),
        )

    async def create_completion(self, messages: list[ChatMessage]) -> ChatResponse:
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=[m.as_dict() for m in messages],
            )
        except openai.APIError as exc:
            raise translate_openai_error(exc) from exc

        choices = list(resp.choices or [])
        return ChatResponse(
            choices=[c.message.content or "" for c in choices],
            model=getattr(resp, "model", None) or self.model,
            finish_reason=choices[0].finish_reason if choices else None,
        )

    async def close(self) -> None:
        await self._client.close()
