"""
Cancellation context tests.
"""

import asyncio

import pytest

from scrape_gmaps.gmaps_errors import JobCancelled
from scrape_gmaps.job_context import JobContext


class TestSleep:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_wait_returns_true(self):
        assert await JobContext().sleep(0.01) is True

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_cancel_ends_wait_early(self):
        ctx = JobContext()
        asyncio.get_running_loop().call_later(0.01, ctx.cancel)

        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await ctx.sleep(30) is False
        assert loop.time() - started < 5

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_deadline_clips_wait(self):
        ctx = JobContext(timeout=0.02)

        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await ctx.sleep(30) is False
        assert loop.time() - started < 5

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        ctx = JobContext()
        ctx.cancel()
        assert await ctx.sleep(0) is False

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_task_cancel_survives_event_set_in_same_tick(self):
        ctx = JobContext()
        sleeper = asyncio.create_task(ctx.sleep(30))
        await asyncio.sleep(0)

        ctx.cancel()
        sleeper.cancel()

        with pytest.raises(asyncio.CancelledError):
            await sleeper


class TestGuard:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def work():
            return "done"

        assert await JobContext().guard(work()) == "done"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_propagates_errors(self):
        async def work():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await JobContext().guard(work())

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_cancel_interrupts_awaitable(self):
        ctx = JobContext()
        interrupted = asyncio.Event()

        async def hang():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                interrupted.set()
                raise

        asyncio.get_running_loop().call_later(0.01, ctx.cancel)

        with pytest.raises(JobCancelled, match="job cancelled"):
            await ctx.guard(hang())

        await asyncio.wait_for(interrupted.wait(), timeout=1)

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_deadline_interrupts_awaitable(self):
        ctx = JobContext(timeout=0.02)

        with pytest.raises(JobCancelled, match="deadline"):
            await ctx.guard(asyncio.sleep(30))

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts(self):
        ctx = JobContext()
        ctx.cancel()
        started = []

        async def work():
            started.append(True)

        with pytest.raises(JobCancelled):
            await ctx.guard(work())

        assert started == []


class TestChildContext:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_child_shares_cancel_event(self):
        parent = JobContext()
        child = parent.child(timeout=60)

        parent.cancel()

        assert child.cancelled()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_child_keeps_tighter_deadline(self):
        parent = JobContext(timeout=1)
        child = parent.child(timeout=60)

        assert child.deadline == parent.deadline
        assert parent.child(timeout=0.1).deadline < parent.deadline

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unbounded_context(self):
        ctx = JobContext()
        assert ctx.remaining() is None
        assert not ctx.cancelled()
