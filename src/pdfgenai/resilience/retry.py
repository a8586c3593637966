"""Exponential-backoff retry driver with a permanent/transient split.

Wraps :class:`tenacity.AsyncRetrying`:

* wait: ``initial * multiplier ** (n - 1)`` capped at ``max_interval``,
  plus up to ``jitter`` seconds of random delay
* stop: before a backoff sleep that would carry the total elapsed time
  past ``max_elapsed``
* retry: only :class:`~pdfgenai.errors.ServiceError` tagged transient

Permanent errors and anything that is not a service error (local I/O,
cancellation, bugs) leave the loop on the first occurrence without
waiting. Backoff sleeps go through the caller's
:class:`~pdfgenai.resilience.cancellation.CallContext`, so cancelling it
interrupts the wait.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_before_delay,
    wait_exponential,
    wait_random,
)

from pdfgenai.config import RetryConfig
from pdfgenai.errors import RetryExhaustedError, ServiceError
from pdfgenai.resilience.cancellation import BACKGROUND, CallContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryAttempt:
    """Snapshot of a failed attempt that is about to be retried."""

    number: int
    elapsed: float
    error: BaseException | None
    next_delay: float


def is_transient(exc: BaseException) -> bool:
    """Retry classifier: only transient-tagged service errors are retried."""
    return isinstance(exc, ServiceError) and exc.retryable


class RetryPolicy:
    """Runs an async attempt function until success, permanent failure or
    the elapsed-time ceiling.

    Args:
        config: Backoff intervals and ceiling.
        name: Operation name used in logs and errors when the caller does
            not pass one to :meth:`run`.
    """

    def __init__(self, config: RetryConfig, name: str = "operation") -> None:
        self.config = config
        self.name = name

    def _wait_strategy(self) -> Any:
        strategy = wait_exponential(
            multiplier=self.config.initial_interval,
            exp_base=self.config.multiplier,
            max=self.config.max_interval,
        )
        if self.config.jitter > 0:
            strategy = strategy + wait_random(0, self.config.jitter)
        return strategy

    async def run(
        self,
        attempt: Callable[[], Awaitable[T]],
        ctx: CallContext = BACKGROUND,
        *,
        operation: str | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
        on_retry: Callable[[RetryAttempt], None] | None = None,
    ) -> T:
        """Call *attempt* under this policy.

        Args:
            attempt: Zero-argument coroutine function performing one try.
            ctx: Cancellation context for backoff waits.
            operation: Name used in log lines and in the exhaustion error.
            log: Logger to use instead of the module logger.
            on_retry: Called before each backoff sleep.

        Returns:
            Whatever the first successful attempt returns.

        Raises:
            RetryExhaustedError: Ceiling reached; chained to the last error.
            CancellationError: *ctx* fired during a backoff wait.
            PermanentServiceError: Re-raised untouched on first occurrence.
        """
        op = operation or self.name
        log = log or logger

        def _before(state: RetryCallState) -> None:
            log.debug("%s: attempt %d", op, state.attempt_number)

        def _before_sleep(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            log.warning(
                "%s: attempt %d failed, retrying in %.2fs: %s",
                op,
                state.attempt_number,
                delay,
                error,
                extra={
                    "operation": op,
                    "attempt": state.attempt_number,
                    "status_code": getattr(error, "status_code", None),
                },
            )
            if on_retry is not None:
                on_retry(
                    RetryAttempt(
                        number=state.attempt_number,
                        elapsed=state.seconds_since_start or 0.0,
                        error=error,
                        next_delay=delay,
                    )
                )

        retrying = AsyncRetrying(
            wait=self._wait_strategy(),
            stop=stop_before_delay(self.config.max_elapsed),
            retry=retry_if_exception(is_transient),
            sleep=ctx.sleep,
            before=_before,
            before_sleep=_before_sleep,
            reraise=False,
        )

        try:
            return await retrying(attempt)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            attempts = last_attempt.attempt_number
            raise RetryExhaustedError(
                f"failed after retries ({attempts} attempts): {last_error}",
                last_error=last_error,
                attempts=attempts,
                operation=op,
            ) from last_error
