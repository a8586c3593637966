"""Test doubles shared across test modules."""

from __future__ import annotations

from pdfgenai.config import RetryConfig
from pdfgenai.models import ChatMessage, ChatResponse, UploadResult


def make_upload_result(**overrides) -> UploadResult:
    data = {
        "file_id": "file-abc123",
        "filename": "report.pdf",
        "status": "processed",
        "purpose": "assistants",
        "size_bytes": 1024,
    }
    data.update(overrides)
    return UploadResult(**data)


def fast_retry(max_elapsed: float = 0.3) -> RetryConfig:
    """Millisecond backoff so retry tests stay fast."""
    return RetryConfig(
        initial_interval=0.01,
        multiplier=1.5,
        max_interval=0.03,
        max_elapsed=max_elapsed,
        jitter=0.0,
    )


class FakeTransport:
    """Transport double that replays scripted outcomes.

    Each outcome is either a value to return or an exception to raise. The
    last outcome repeats once the script runs out.
    """

    model = "fake-model"

    def __init__(
        self,
        upload_outcomes: list | None = None,
        completion_outcomes: list | None = None,
    ) -> None:
        self.upload_outcomes = list(upload_outcomes or [make_upload_result()])
        self.completion_outcomes = list(completion_outcomes or [ChatResponse(choices=["pong"])])
        self.upload_calls: list[tuple[str, str]] = []
        self.completion_calls: list[list[ChatMessage]] = []
        self.closed = False

    @staticmethod
    def _next(outcomes: list):
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def create_file(self, path: str, purpose: str) -> UploadResult:
        self.upload_calls.append((path, purpose))
        return self._next(self.upload_outcomes)

    async def create_completion(self, messages: list[ChatMessage]) -> ChatResponse:
        self.completion_calls.append(messages)
        return self._next(self.completion_outcomes)

    async def close(self) -> None:
        self.closed = True
