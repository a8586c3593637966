"""Resilient client for remote file upload and text completion.

Every operation is composed the same way::

    span(operation) -> rate-limit token -> RetryPolicy(transport call)

* the rate limiter bounds the outbound request rate across all callers
* the retry policy retries transient failures with exponential backoff
  until a per-operation ceiling (uploads 60s, completions 30s)
* permanent failures (4xx except 429) surface on the first attempt
* errors are tagged with the operation name, recorded on the span and
  logged before they are re-raised

Usage::

    config = load_client_config()
    async with ResilientClient.from_config(config) as client:
        uploaded = await client.upload_file("report.pdf", "assistants")
        summary = await client.complete_text("Summarize: ...", timeout=60)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pdfgenai.config import ClientConfig
from pdfgenai.errors import (
    CancellationError,
    EmptyResponseError,
    PdfGenAIError,
)
from pdfgenai.models import ChatMessage, ChatResponse, CompletionResult, Role, UploadResult
from pdfgenai.resilience.cancellation import CallContext
from pdfgenai.resilience.rate_limiter import TokenBucketRateLimiter
from pdfgenai.resilience.retry import RetryAttempt, RetryPolicy
from pdfgenai.telemetry import SpanHandle, Telemetry
from pdfgenai.transports import Transport, build_transport

T = TypeVar("T")

UPLOAD_FILE = "upload_file"
COMPLETE_TEXT = "complete_text"


class ResilientClient:
    """Wraps a :class:`~pdfgenai.transports.Transport` with rate limiting,
    retries, cancellation, tracing and structured logging.

    Safe to share between tasks; the rate limiter is the only mutable state.

    Args:
        transport: Raw remote-service calls.
        config: Rate limit and retry settings. Defaults to ``ClientConfig()``.
        logger: Logger override for the client's log events.
        rate_limiter: Rate limiter override (e.g. one shared by several
            clients). Built from ``config.rate_limit`` when omitted.
        telemetry: Tracer override. Uses the global tracer provider when
            omitted.
    """

    def __init__(
        self,
        transport: Transport,
        config: ClientConfig | None = None,
        *,
        logger: logging.Logger | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        telemetry: Telemetry | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport = transport
        self._rate_limiter = rate_limiter or TokenBucketRateLimiter(
            rate=self._config.rate_limit.rate,
            burst=self._config.rate_limit.burst,
        )
        telemetry = telemetry or Telemetry.default()
        if logger is not None:
            telemetry = telemetry.with_logger(logger)
        self._telemetry = telemetry
        self._log = telemetry.log
        self._upload_policy = RetryPolicy(self._config.upload_retry, UPLOAD_FILE)
        self._completion_policy = RetryPolicy(self._config.completion_retry, COMPLETE_TEXT)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: object) -> ResilientClient:
        """Build the transport named in *config* and wrap it."""
        return cls(build_transport(config), config, **kwargs)  # type: ignore[arg-type]

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def rate_limiter(self) -> TokenBucketRateLimiter:
        return self._rate_limiter

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        path: str,
        purpose: str,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        """Upload a local file.

        Args:
            path: Readable local file.
            purpose: Non-empty tag telling the service how the file will be
                used (e.g. ``"assistants"``, ``"fine-tune"``).
            cancel: Setting this event aborts the call, including an in-flight
                request, a rate-limit wait or a backoff sleep.
            timeout: Overall deadline in seconds for the whole call.

        Returns:
            The :class:`UploadResult` reported by the service.

        Raises:
            ValueError: If *purpose* is empty.
            CancellationError: *cancel* fired or *timeout* passed.
            LocalIOError: The file could not be read (not retried).
            PermanentServiceError: The service rejected the request.
            RetryExhaustedError: Transient failures outlasted the ceiling.
        """
        if not purpose or not purpose.strip():
            raise ValueError("purpose must not be empty")
        ctx = CallContext.create(cancel, timeout)

        async def attempt() -> UploadResult:
            return await ctx.wait(self._transport.create_file(path, purpose))

        attributes = {"file.path": str(path), "file.purpose": purpose}
        with self._telemetry.span(UPLOAD_FILE, attributes) as span:
            result = await self._execute(UPLOAD_FILE, span, ctx, self._upload_policy, attempt)
            span.set_attribute("file.id", result.file_id)
            self._log.info(
                "File uploaded successfully: %s",
                result.file_id,
                extra={"operation": UPLOAD_FILE, "file_id": result.file_id, "path": str(path)},
            )
            return result

    async def complete_text(
        self,
        prompt: str,
        *,
        system: str | None = None,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        """Send *prompt* as a single user message and return the first choice.

        Truncating *prompt* to the model's context window is the caller's
        job. A response with no choices is retried like any transient
        failure.

        Raises:
            ValueError: If *prompt* is empty.
            CancellationError: *cancel* fired or *timeout* passed.
            PermanentServiceError: The service rejected the request.
            RetryExhaustedError: Transient failures outlasted the ceiling.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")
        ctx = CallContext.create(cancel, timeout)

        messages = []
        if system:
            messages.append(ChatMessage(Role.SYSTEM, system))
        messages.append(ChatMessage(Role.USER, prompt))

        attempts = 0

        async def attempt() -> ChatResponse:
            nonlocal attempts
            attempts += 1
            response = await ctx.wait(self._transport.create_completion(messages))
            if not response.choices:
                raise EmptyResponseError("empty choices in response")
            return response

        attributes = {"text.length": len(prompt), "llm.model": self._transport.model}
        with self._telemetry.span(COMPLETE_TEXT, attributes) as span:
            response = await self._execute(
                COMPLETE_TEXT, span, ctx, self._completion_policy, attempt
            )
            span.set_attribute("llm.attempts", attempts)
            self._log.info(
                "Chat completion successful after %d attempt(s)",
                attempts,
                extra={"operation": COMPLETE_TEXT, "attempt": attempts},
            )
            return CompletionResult(
                content=response.choices[0],
                model=response.model,
                finish_reason=response.finish_reason,
                attempts=attempts,
            )

    async def send_text(self, text: str, **kwargs: object) -> str:
        """Shortcut for ``complete_text(text).content``."""
        result = await self.complete_text(text, **kwargs)  # type: ignore[arg-type]
        return result.content

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the transport's connections."""
        await self._transport.close()

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal: rate limit + retry + error reporting
    # ------------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        span: SpanHandle,
        ctx: CallContext,
        policy: RetryPolicy,
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        def on_retry(retry: RetryAttempt) -> None:
            span.add_event(
                "retry",
                {
                    "retry.attempt": retry.number,
                    "retry.delay": retry.next_delay,
                    "retry.error": str(retry.error),
                },
            )

        try:
            await self._rate_limiter.acquire(ctx)
            return await policy.run(
                attempt, ctx, operation=operation, log=self._log, on_retry=on_retry
            )
        except CancellationError as exc:
            exc.with_operation(operation)
            span.record_error(exc)
            self._log.warning("%s aborted: %s", operation, exc.message, extra={"operation": operation})
            raise
        except PdfGenAIError as exc:
            exc.with_operation(operation)
            span.record_error(exc)
            self._log.error(
                "%s failed: %s",
                operation,
                exc.message,
                extra={
                    "operation": operation,
                    "status_code": getattr(exc, "status_code", None),
                },
            )
            raise
        except asyncio.CancelledError:
            span.add_event("cancelled")
            self._log.warning("%s cancelled", operation, extra={"operation": operation})
            raise
