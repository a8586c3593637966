"""Tests for RetryPolicy: classification, ceilings and cancellation."""

from __future__ import annotations

import asyncio
import time

import pytest

from pdfgenai.config import RetryConfig
from pdfgenai.errors import (
    CancellationError,
    EmptyResponseError,
    LocalIOError,
    PermanentServiceError,
    RetryExhaustedError,
    TransientServiceError,
)
from pdfgenai.resilience.cancellation import CallContext
from pdfgenai.resilience.retry import RetryPolicy, is_transient

from fakes import fast_retry


class Counter:
    """Attempt function that fails with scripted errors, then succeeds."""

    def __init__(self, failures: list[BaseException], result: object = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class AlwaysFail:
    def __init__(self, exc_factory) -> None:
        self.exc_factory = exc_factory
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        raise self.exc_factory()


class TestClassifier:
    def test_only_transient_service_errors_retry(self):
        assert is_transient(TransientServiceError("503", status_code=503))
        assert is_transient(EmptyResponseError("empty"))
        assert not is_transient(PermanentServiceError("401", status_code=401))
        assert not is_transient(LocalIOError("unreadable", path="/nope"))
        assert not is_transient(ValueError("bug"))


class TestRetryPolicy:
    async def test_permanent_failure_invokes_once(self):
        """A permanent error stops the loop on the first attempt."""
        attempt = AlwaysFail(lambda: PermanentServiceError("bad request", status_code=400))
        policy = RetryPolicy(RetryConfig(initial_interval=1.0, max_elapsed=60.0))

        start = time.monotonic()
        with pytest.raises(PermanentServiceError):
            await policy.run(attempt)

        assert attempt.calls == 1
        assert time.monotonic() - start < 0.5

    async def test_transient_failure_runs_until_ceiling(self):
        """Always-transient attempts exhaust the elapsed ceiling."""
        attempt = AlwaysFail(lambda: TransientServiceError("unavailable", status_code=503))
        policy = RetryPolicy(fast_retry(max_elapsed=0.2), name="fetch_status")

        start = time.monotonic()
        with pytest.raises(RetryExhaustedError) as exc_info:
            await policy.run(attempt)
        elapsed = time.monotonic() - start

        err = exc_info.value
        assert elapsed <= 0.2 + 0.05
        assert attempt.calls > 1
        assert err.attempts == attempt.calls
        assert isinstance(err.last_error, TransientServiceError)
        assert err.__cause__ is err.last_error
        assert err.operation == "fetch_status"
        assert "failed after retries" in str(err)

    async def test_next_step_never_overshoots_ceiling(self):
        """Retrying stops when the next backoff step would pass the ceiling."""
        config = RetryConfig(
            initial_interval=0.4, multiplier=1.0, max_interval=0.4, max_elapsed=0.5, jitter=0.0
        )
        attempt = AlwaysFail(lambda: TransientServiceError("unavailable", status_code=503))

        start = time.monotonic()
        with pytest.raises(RetryExhaustedError):
            await RetryPolicy(config).run(attempt)
        elapsed = time.monotonic() - start

        assert elapsed <= 0.5
        assert attempt.calls == 2

    @pytest.mark.parametrize("failures", [0, 1, 3])
    async def test_n_transient_failures_then_success(self, failures):
        """N transient failures followed by success take N+1 attempts."""
        attempt = Counter(
            [TransientServiceError("flaky", status_code=502) for _ in range(failures)],
            result={"id": 1},
        )
        policy = RetryPolicy(fast_retry(max_elapsed=5.0))

        result = await policy.run(attempt)

        assert result == {"id": 1}
        assert attempt.calls == failures + 1

    async def test_empty_response_is_retried(self):
        attempt = Counter([EmptyResponseError("empty choices"), EmptyResponseError("empty choices")])
        result = await RetryPolicy(fast_retry(max_elapsed=5.0)).run(attempt)

        assert result == "ok"
        assert attempt.calls == 3

    async def test_local_io_error_is_not_retried(self):
        attempt = AlwaysFail(lambda: LocalIOError("cannot read", path="/missing.pdf"))

        with pytest.raises(LocalIOError):
            await RetryPolicy(fast_retry()).run(attempt)
        assert attempt.calls == 1

    async def test_on_retry_hook_sees_each_backoff(self):
        attempt = Counter([TransientServiceError("a"), TransientServiceError("b")])
        seen = []

        await RetryPolicy(fast_retry(max_elapsed=5.0)).run(attempt, on_retry=seen.append)

        assert [r.number for r in seen] == [1, 2]
        assert all(r.next_delay >= 0 for r in seen)
        assert str(seen[1].error) == "b"

    async def test_backoff_is_capped(self):
        """Steps never exceed max_interval (+ jitter)."""
        config = RetryConfig(
            initial_interval=0.01, multiplier=10.0, max_interval=0.02, max_elapsed=5.0, jitter=0.0
        )
        attempt = Counter([TransientServiceError("x") for _ in range(4)])
        seen = []

        await RetryPolicy(config).run(attempt, on_retry=seen.append)

        assert max(r.next_delay for r in seen) <= 0.02 + 1e-9


class TestRetryCancellation:
    async def test_cancel_during_backoff_returns_promptly(self):
        """Cancelling mid-backoff does not wait out the interval."""
        config = RetryConfig(initial_interval=5.0, max_interval=5.0, max_elapsed=60.0, jitter=0.0)
        attempt = AlwaysFail(lambda: TransientServiceError("unavailable", status_code=503))
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)

        start = time.monotonic()
        with pytest.raises(CancellationError):
            await RetryPolicy(config).run(attempt, CallContext.create(cancel))

        assert time.monotonic() - start < 1.0
        assert attempt.calls == 1

    async def test_deadline_during_backoff(self):
        config = RetryConfig(initial_interval=5.0, max_interval=5.0, max_elapsed=60.0, jitter=0.0)
        attempt = AlwaysFail(lambda: TransientServiceError("unavailable"))

        start = time.monotonic()
        with pytest.raises(CancellationError, match="deadline exceeded"):
            await RetryPolicy(config).run(attempt, CallContext.create(timeout=0.05))
        assert time.monotonic() - start < 1.0
