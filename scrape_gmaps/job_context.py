"""
Cancellation context for a single job attempt.

Every suspension point in the crawl (navigation, consent check, load
state wait, redirect pause, scroll wait) goes through a JobContext so a
shutdown signal or a per-job deadline ends the wait promptly.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from .gmaps_errors import JobCancelled

T = TypeVar("T")


class JobContext:
    """
    Shared cancel event plus an optional deadline.

    Usage:
        ctx = JobContext(timeout=60)
        if not await ctx.sleep(2.0):
            return best_so_far
        html = await ctx.guard(page.content())
    """

    def __init__(
        self,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ):
        """
        Args:
            cancel_event: Event shared with the engine; created if omitted
            timeout: Seconds from now until the context expires
            deadline: Absolute loop time; the earlier of deadline/timeout wins
        """
        self._event = cancel_event or asyncio.Event()

        if timeout is not None:
            timeout_deadline = asyncio.get_running_loop().time() + timeout
            deadline = timeout_deadline if deadline is None else min(deadline, timeout_deadline)

        self._deadline = deadline

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def child(self, timeout: Optional[float] = None) -> "JobContext":
        """Derive a context sharing this cancel event with a tighter deadline."""
        return JobContext(self._event, timeout=timeout, deadline=self._deadline)

    def cancel(self) -> None:
        self._event.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def sleep(self, seconds: float) -> bool:
        """
        Wait up to ``seconds``, ending early on cancellation.

        Returns:
            True if the full wait elapsed, False if the context was cancelled
        """
        if self.cancelled():
            return False

        timeout = max(seconds, 0.0)
        remaining = self.remaining()
        clipped = remaining is not None and remaining < timeout
        if clipped:
            timeout = remaining

        # asyncio.wait never swallows a cancel of the calling task
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        finally:
            waiter.cancel()

        if waiter in done:
            return False
        return not clipped

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the context is cancelled first.

        Raises:
            JobCancelled: If cancellation or the deadline wins the race
        """
        if self.cancelled():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise JobCancelled("job cancelled")

        task = asyncio.ensure_future(awaitable)
        cancel_wait = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancel_wait},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            cancel_wait.cancel()

        if task in done:
            return task.result()

        task.cancel()
        if self._event.is_set():
            raise JobCancelled("job cancelled")
        raise JobCancelled("job deadline exceeded")
