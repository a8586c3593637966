"""Rate limiting, retry and cancellation building blocks.

Public API
----------
.. autoclass:: CallContext
.. autoclass:: TokenBucketRateLimiter
.. autoclass:: RetryPolicy
.. autoclass:: RetryAttempt
"""

from pdfgenai.resilience.cancellation import BACKGROUND, CallContext
from pdfgenai.resilience.rate_limiter import TokenBucketRateLimiter
from pdfgenai.resilience.retry import RetryAttempt, RetryPolicy, is_transient

__all__ = [
    "BACKGROUND",
    "CallContext",
    "RetryAttempt",
    "RetryPolicy",
    "TokenBucketRateLimiter",
    "is_transient",
]
