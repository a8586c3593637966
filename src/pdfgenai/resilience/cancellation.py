"""Cooperative cancellation for the client's suspension points.

A :class:`CallContext` bundles an optional cancel :class:`asyncio.Event`
with an optional deadline on the event loop clock. Rate-limiter waits,
transport calls and retry backoff sleeps go through
:meth:`CallContext.wait` so that setting the event, or reaching the
deadline, interrupts them at once.

Task cancellation (``asyncio.CancelledError``) is independent of this and
always propagates unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from pdfgenai.errors import CancellationError

T = TypeVar("T")


@dataclass(frozen=True)
class CallContext:
    """Cancel event plus absolute deadline (``loop.time()`` seconds)."""

    cancel_event: asyncio.Event | None = None
    deadline: float | None = None

    @classmethod
    def create(
        cls, cancel: asyncio.Event | None = None, timeout: float | None = None
    ) -> CallContext:
        """Build a context from a cancel event and a relative timeout."""
        deadline = None
        if timeout is not None:
            deadline = asyncio.get_running_loop().time() + timeout
        return cls(cancel_event=cancel, deadline=deadline)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()

    def check(self, error_cls: type[CancellationError] = CancellationError) -> None:
        """Raise *error_cls* if the context is already cancelled or expired."""
        if self.cancelled:
            raise error_cls("context cancelled")
        if self.expired:
            raise error_cls("deadline exceeded")

    async def wait(
        self,
        awaitable: Awaitable[T],
        error_cls: type[CancellationError] = CancellationError,
    ) -> T:
        """Await *awaitable* unless the context fires first.

        When the cancel event is set or the deadline passes, the pending
        work is cancelled and *error_cls* is raised.
        """
        if self.cancelled or self.expired:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.check(error_cls)

        if self.cancel_event is None and self.deadline is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        watchers: set[asyncio.Future] = {work}
        cancel_waiter: asyncio.Future | None = None
        if self.cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(self.cancel_event.wait())
            watchers.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                watchers,
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for fut in watchers:
                if not fut.done():
                    fut.cancel()
            # Let cancelled helpers unwind before returning to the caller.
            await asyncio.gather(*watchers, return_exceptions=True)

        if work in done and not work.cancelled():
            return work.result()
        if cancel_waiter is not None and cancel_waiter in done:
            raise error_cls("context cancelled")
        raise error_cls("deadline exceeded")

    async def sleep(self, seconds: float) -> None:
        """Cancellable :func:`asyncio.sleep`."""
        await self.wait(asyncio.sleep(seconds))


BACKGROUND = CallContext()
