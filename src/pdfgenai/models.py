"""Data models shared by the client, transports and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Chat message author."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single OpenAI-style chat message."""

    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ChatResponse:
    """Raw completion response as returned by a transport.

    ``choices`` holds the text of each returned choice/candidate and may be
    empty; the client decides what an empty response means.
    """

    choices: list[str] = field(default_factory=list)
    model: str | None = None
    finish_reason: str | None = None


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful file upload.

    Attributes:
        file_id: Remote file identifier (e.g. ``file-abc123`` or ``files/xyz``).
        filename: Display name the service recorded for the file.
        status: Processing status reported at upload time.
        purpose: Purpose tag the file was uploaded with.
        size_bytes: Size reported by the service, if any.
    """

    file_id: str
    filename: str
    status: str
    purpose: str
    size_bytes: int | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a successful text completion."""

    content: str
    model: str | None = None
    finish_reason: str | None = None
    attempts: int = 1
