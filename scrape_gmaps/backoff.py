"""
Bounded polling with exponential backoff.

Shared by redirect settling (fixed pause, 5 checks), feed scrolling
(escalating pause until the feed stops growing) and the engine's retry
delays.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .gmaps_config import BackoffConfig
from .gmaps_errors import JobCancelled
from .job_context import JobContext


class PollStatus(Enum):
    """How a polling loop ended."""
    SETTLED = "settled"      # terminal check returned True
    EXHAUSTED = "exhausted"  # ran out of attempts
    CANCELLED = "cancelled"  # context cancelled, value is best so far


@dataclass
class PollResult:
    attempts: int
    value: Any
    status: PollStatus

    @property
    def settled(self) -> bool:
        return self.status is PollStatus.SETTLED


class BackoffPoller:
    """
    Run an attempt until a terminal check passes, waiting between attempts.

    The observe callable receives the 1-based attempt number. Cancellation never
    raises out of ``poll``: it returns the last non-terminal value seen.
    """

    def __init__(self, config: BackoffConfig, ctx: JobContext):
        self.config = config
        self.ctx = ctx

    async def poll(
        self,
        observe: Callable[[int], Awaitable[Any]],
        is_done: Callable[[Any], bool],
        max_attempts: Optional[int] = None,
        initial: Any = None,
    ) -> PollResult:
        """
        Args:
            observe: Async callable performing one attempt
            is_done: Terminal-state check applied to each observed value
            max_attempts: Override for ``config.max_attempts``
            initial: Value reported if no attempt completes

        Returns:
            PollResult with the number of attempts made
        """
        limit = self.config.max_attempts if max_attempts is None else max_attempts
        attempts = 0
        best: Optional[Any] = initial

        for wait in self.config.intervals(limit):
            if self.ctx.cancelled():
                return PollResult(attempts, best, PollStatus.CANCELLED)

            attempts += 1
            try:
                value = await observe(attempts)
            except JobCancelled:
                return PollResult(attempts, best, PollStatus.CANCELLED)

            if is_done(value):
                return PollResult(attempts, value, PollStatus.SETTLED)

            best = value

            if attempts < limit and not await self.ctx.sleep(wait):
                return PollResult(attempts, best, PollStatus.CANCELLED)

        return PollResult(attempts, best, PollStatus.EXHAUSTED)
