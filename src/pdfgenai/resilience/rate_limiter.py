"""Token-bucket admission control for outbound requests.

Built on :class:`aiolimiter.AsyncLimiter`, whose leaky bucket is a token
bucket seen from the other side: a bucket of capacity *burst* that drains
at *rate* per second admits at most *burst* requests at once and *rate*
requests per second sustained. Refill is computed from elapsed time on
each call; there is no background task.
"""

from __future__ import annotations

import logging

from aiolimiter import AsyncLimiter

from pdfgenai.errors import RateLimitWaitAborted
from pdfgenai.resilience.cancellation import BACKGROUND, CallContext

logger = logging.getLogger(__name__)


class TokenBucketRateLimiter:
    """Bounds the outbound request rate of one client.

    Args:
        rate: Sustained tokens per second.
        burst: Maximum tokens held (requests admitted with no wait).

    Usage::

        limiter = TokenBucketRateLimiter(rate=10, burst=20)
        await limiter.acquire(ctx)
    """

    def __init__(self, rate: float = 10.0, burst: int = 20) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate!r}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst!r}")
        self._rate = float(rate)
        self._burst = int(burst)
        self._limiter = AsyncLimiter(self._burst, self._burst / self._rate)

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def burst(self) -> int:
        return self._burst

    @property
    def refill_interval(self) -> float:
        """Seconds for one token to come back."""
        return 1.0 / self._rate

    def has_capacity(self) -> bool:
        """Whether a token could be taken right now without waiting."""
        return self._limiter.has_capacity()

    async def acquire(self, ctx: CallContext = BACKGROUND) -> None:
        """Take one token, suspending until one is free.

        Raises:
            RateLimitWaitAborted: If *ctx* is cancelled or expires first.
                No token is consumed in that case.
        """
        ctx.check(RateLimitWaitAborted)
        if not self._limiter.has_capacity():
            logger.debug(
                "Rate limiter: waiting for token (rate=%.2f/s, burst=%d)",
                self._rate,
                self._burst,
            )
        await ctx.wait(self._limiter.acquire(), RateLimitWaitAborted)

    def __repr__(self) -> str:
        return f"TokenBucketRateLimiter(rate={self._rate!r}, burst={self._burst!r})"
