"""Tests for the token-bucket rate limiter and its cancellation behavior."""

from __future__ import annotations

import asyncio
import time

import pytest

from pdfgenai.errors import CancellationError, RateLimitWaitAborted
from pdfgenai.resilience.cancellation import CallContext
from pdfgenai.resilience.rate_limiter import TokenBucketRateLimiter


class TestTokenBucket:
    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError, match="rate"):
            TokenBucketRateLimiter(rate=0, burst=1)
        with pytest.raises(ValueError, match="burst"):
            TokenBucketRateLimiter(rate=1, burst=0)

    async def test_burst_is_admitted_without_waiting(self):
        """A full bucket admits *burst* requests immediately."""
        limiter = TokenBucketRateLimiter(rate=1.0, burst=5)

        start = time.monotonic()
        for _ in range(5):
            await limiter.acquire()
        assert time.monotonic() - start < 0.1

    async def test_never_more_than_burst_at_once(self):
        """After *burst* acquisitions there is no capacity left."""
        limiter = TokenBucketRateLimiter(rate=1.0, burst=3)
        for _ in range(3):
            await limiter.acquire()

        assert not limiter.has_capacity()

    async def test_below_limit_waits_at_most_one_refill_interval(self):
        """At a request rate below the limit, acquire blocks < one refill."""
        limiter = TokenBucketRateLimiter(rate=20.0, burst=1)
        await limiter.acquire()

        start = time.monotonic()
        await limiter.acquire()
        waited = time.monotonic() - start

        assert waited <= limiter.refill_interval + 0.05

    async def test_concurrent_callers_all_admitted(self):
        """Many tasks sharing one limiter all get through."""
        limiter = TokenBucketRateLimiter(rate=200.0, burst=5)

        start = time.monotonic()
        await asyncio.wait_for(
            asyncio.gather(*(limiter.acquire() for _ in range(20))), timeout=2.0
        )
        elapsed = time.monotonic() - start

        # 15 tokens beyond the burst at 200/s need ~75ms of refill
        assert elapsed >= 0.05


class TestRateLimiterCancellation:
    async def test_precancelled_context_consumes_no_token(self):
        """A cancelled context fails immediately and leaves the bucket full."""
        limiter = TokenBucketRateLimiter(rate=1.0, burst=1)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(RateLimitWaitAborted):
            await limiter.acquire(CallContext.create(cancel))

        assert limiter.has_capacity()

    async def test_cancel_event_interrupts_wait(self):
        """Setting the cancel event aborts a blocked acquire promptly."""
        limiter = TokenBucketRateLimiter(rate=0.5, burst=1)
        await limiter.acquire()

        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)

        start = time.monotonic()
        with pytest.raises(RateLimitWaitAborted, match="cancelled"):
            await limiter.acquire(CallContext.create(cancel))
        assert time.monotonic() - start < 0.5

    async def test_deadline_interrupts_wait(self):
        limiter = TokenBucketRateLimiter(rate=0.5, burst=1)
        await limiter.acquire()

        with pytest.raises(CancellationError, match="deadline exceeded"):
            await limiter.acquire(CallContext.create(timeout=0.05))

    async def test_task_cancellation_propagates(self):
        """Plain task cancellation is not converted into a library error."""
        limiter = TokenBucketRateLimiter(rate=0.5, burst=1)
        await limiter.acquire()

        task = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.02)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_aborted_wait_consumes_no_token(self):
        """A wait cancelled midway leaves the refill schedule untouched."""
        limiter = TokenBucketRateLimiter(rate=4.0, burst=1)
        await limiter.acquire()

        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)
        with pytest.raises(RateLimitWaitAborted):
            await limiter.acquire(CallContext.create(cancel))

        await asyncio.sleep(limiter.refill_interval + 0.05)
        assert limiter.has_capacity()
