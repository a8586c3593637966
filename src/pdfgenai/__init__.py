"""Resilient upload/completion client for remote text-generation services."""

__version__ = "0.1.0"

from pdfgenai.client import ResilientClient
from pdfgenai.config import ClientConfig, RateLimitConfig, RetryConfig, load_client_config
from pdfgenai.errors import (
    CancellationError,
    EmptyResponseError,
    ErrorKind,
    ExtractionError,
    LocalIOError,
    PdfGenAIError,
    PermanentServiceError,
    RateLimitWaitAborted,
    RetryExhaustedError,
    ServiceError,
    TransientServiceError,
)
from pdfgenai.models import ChatMessage, ChatResponse, CompletionResult, Role, UploadResult

__all__ = [
    "CancellationError",
    "ChatMessage",
    "ChatResponse",
    "ClientConfig",
    "CompletionResult",
    "EmptyResponseError",
    "ErrorKind",
    "ExtractionError",
    "LocalIOError",
    "PdfGenAIError",
    "PermanentServiceError",
    "RateLimitConfig",
    "RateLimitWaitAborted",
    "ResilientClient",
    "RetryConfig",
    "RetryExhaustedError",
    "Role",
    "ServiceError",
    "TransientServiceError",
    "UploadResult",
    "__version__",
    "load_client_config",
]
