"""Gemini transport built on the google-genai SDK (``client.aio``).

The Files API has no notion of an upload purpose; the purpose tag is kept
on the returned :class:`~pdfgenai.models.UploadResult` only.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from pdfgenai.errors import ServiceError, TransientServiceError, service_error_for_status
from pdfgenai.models import ChatMessage, ChatResponse, Role, UploadResult
from pdfgenai.transports.base import read_upload_bytes

logger = logging.getLogger(__name__)


def translate_genai_error(exc: Exception) -> ServiceError:
    """Convert a google-genai or httpx exception into a tagged service error."""
    if isinstance(exc, genai_errors.APIError):
        return service_error_for_status(f"{exc.code} {exc.message}", exc.code)
    if isinstance(exc, httpx.TransportError):
        return TransientServiceError(f"connection error: {exc}")
    return service_error_for_status(str(exc), getattr(exc, "code", None))


def _candidate_text(candidate: Any) -> str:
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(p, "text", None) or "" for p in parts)


class GeminiTransport:
    """Uploads files and generates content against the Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model
        if client is None:
            http_options: dict[str, Any] = {}
            if base_url:
                http_options["base_url"] = base_url
            if timeout is not None:
                # google-genai takes milliseconds
                http_options["timeout"] = int(timeout * 1000)
            client = genai.Client(
                api_key=api_key,
                http_options=genai_types.HttpOptions(**http_options) if http_options else None,
            )
        self._client = client

    async def create_file(self, path: str, purpose: str) -> UploadResult:
        content = await read_upload_bytes(path)
        filename = Path(path).name
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        logger.debug("Uploading %s (%d bytes, mime_type=%s)", path, len(content), mime_type)
        try:
            file_obj = await self._client.aio.files.upload(
                file=io.BytesIO(content),
                config={"display_name": filename[:512], "mime_type": mime_type},
            )
        except (genai_errors.APIError, httpx.TransportError) as exc:
            raise translate_genai_error(exc) from exc

        state = getattr(file_obj, "state", None)
        return UploadResult(
            file_id=file_obj.name,
            filename=getattr(file_obj, "display_name", None) or filename,
            status=(getattr(state, "name", None) or str(state or "uploaded")).lower(),
            purpose=purpose,
            size_bytes=getattr(file_obj, "size_bytes", None),
        )

    async def create_completion(self, messages: list[ChatMessage]) -> ChatResponse:
        system = [m.content for m in messages if m.role is Role.SYSTEM]
        contents = [
            genai_types.Content(
                role="model" if m.role is Role.ASSISTANT else "user",
                parts=[genai_types.Part(text=m.content)],
            )
            for m in messages
            if m.role is not Role.SYSTEM
        ]
        config = None
        if system:
            config = genai_types.GenerateContentConfig(system_instruction="\n".join(system))

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except (genai_errors.APIError, httpx.TransportError) as exc:
            raise translate_genai_error(exc) from exc

        candidates = list(getattr(response, "candidates", None) or [])
        finish = getattr(candidates[0], "finish_reason", None) if candidates else None
        return ChatResponse(
            choices=[_candidate_text(c) for c in candidates],
            model=getattr(response, "model_version", None) or self.model,
            finish_reason=getattr(finish, "name", None) or (str(finish) if finish else None),
        )

    async def close(self) -> None:
        """Close the underlying async client if it supports closing."""
        aio = getattr(self._client, "aio", None)
        closer = getattr(aio, "aclose", None)
        if callable(closer):
            result = closer()
            if result is not None and hasattr(result, "__await__"):
                await result
