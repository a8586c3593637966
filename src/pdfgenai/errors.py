"""Error taxonomy for the resilient client.

Every error carries the name of the operation it escaped from so callers
can log or display it without re-deriving context. Service errors carry an
explicit :class:`ErrorKind` tag plus the HTTP-like status code; the retry
policy only ever looks at the tag, never at a transport library's own
exception types.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Retry classification of a service failure."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


def classify_status(status: int | None) -> ErrorKind:
    """Map an HTTP status code to an :class:`ErrorKind`.

    429 and 5xx are transient; every other 4xx is permanent. Unknown or
    missing codes are treated as transient (network-level failures have
    no status at all).
    """
    if status is None:
        return ErrorKind.TRANSIENT
    if status == 429 or status >= 500:
        return ErrorKind.TRANSIENT
    if 400 <= status < 500:
        return ErrorKind.PERMANENT
    return ErrorKind.TRANSIENT


class PdfGenAIError(Exception):
    """Base class for all errors raised by pdfgenai."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message

    def with_operation(self, operation: str) -> PdfGenAIError:
        """Tag this error with *operation* unless it already carries one."""
        if self.operation is None:
            self.operation = operation
        return self


class CancellationError(PdfGenAIError):
    """The cancel event fired or the deadline passed while waiting."""


class RateLimitWaitAborted(CancellationError):
    """Cancelled while waiting for a rate-limit token. No token was consumed."""


class ServiceError(PdfGenAIError):
    """A failure reported by (or on the way to) the remote service."""

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT


class TransientServiceError(ServiceError):
    """Retryable: network errors, 5xx, 429 rate limiting."""

    kind = ErrorKind.TRANSIENT


class EmptyResponseError(TransientServiceError):
    """The call succeeded but the response carried no usable choices.

    Treated as an intermittent upstream inconsistency and retried.
    """


class PermanentServiceError(ServiceError):
    """Non-retryable: 4xx other than 429 (bad request, auth, unknown model)."""

    kind = ErrorKind.PERMANENT


class RetryExhaustedError(ServiceError):
    """The retry ceiling was reached without a successful attempt."""

    kind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str,
        *,
        last_error: BaseException,
        attempts: int,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=getattr(last_error, "status_code", None),
            operation=operation,
        )
        self.last_error = last_error
        self.attempts = attempts

    @property
    def retryable(self) -> bool:
        return False


class LocalIOError(PdfGenAIError):
    """A local file could not be read. Never retried."""

    def __init__(self, message: str, *, path: str, operation: str | None = None) -> None:
        super().__init__(message, operation=operation)
        self.path = path


class ExtractionError(PdfGenAIError):
    """Text could not be extracted from a document."""


def service_error_for_status(
    message: str, status: int | None, *, operation: str | None = None
) -> ServiceError:
    """Build the tagged :class:`ServiceError` subclass matching *status*."""
    if classify_status(status) is ErrorKind.PERMANENT:
        return PermanentServiceError(message, status_code=status, operation=operation)
    return TransientServiceError(message, status_code=status, operation=operation)
