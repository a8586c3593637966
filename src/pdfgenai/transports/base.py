"""Transport protocol: the raw remote-service calls the client wraps."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol, runtime_checkable

from pdfgenai.errors import LocalIOError
from pdfgenai.models import ChatMessage, ChatResponse, UploadResult


@runtime_checkable
class Transport(Protocol):
    """Interface the client uses to talk to a remote LLM service.

    Implementations must raise :class:`~pdfgenai.errors.ServiceError`
    subclasses tagged transient/permanent for remote failures, and
    :class:`~pdfgenai.errors.LocalIOError` when a local file cannot be read.
    """

    model: str

    async def create_file(self, path: str, purpose: str) -> UploadResult:
        """Upload one local file."""
        ...

    async def create_completion(self, messages: list[ChatMessage]) -> ChatResponse:
        """Run one chat completion. ``choices`` may come back empty."""
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...


async def read_upload_bytes(path: str) -> bytes:
    """Read a file for upload in a worker thread.

    OS errors are mapped to :class:`LocalIOError`.
    """
    file_path = Path(path)
    try:
        return await asyncio.to_thread(file_path.read_bytes)
    except OSError as exc:
        raise LocalIOError(f"cannot read {path}: {exc.strerror or exc}", path=path) from exc
