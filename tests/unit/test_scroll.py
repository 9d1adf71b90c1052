"""
Feed scroll driver tests against a fake page.
"""

import pytest

from conftest import FakePage
from scrape_gmaps.backoff import PollStatus
from scrape_gmaps.gmaps_errors import ScrollMeasureError, ScrollHeightTypeError
from scrape_gmaps.job_context import JobContext
from scrape_gmaps.scroll import SCROLL_FEED_JS, scroll_feed


class TestScrollConvergence:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stops_after_first_repeated_height(self, scroll_config):
        page = FakePage(heights=[100, 250, 250, 400, 500])

        outcome = await scroll_feed(JobContext(), page, 10, scroll_config)

        assert outcome.status is PollStatus.SETTLED
        assert outcome.attempts == 3
        assert outcome.height == 250
        assert len(page.evaluate_calls) == 3, "Scrolling should stop once the height repeats"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_strictly_increasing_uses_whole_budget(self, scroll_config):
        page = FakePage(heights=[100, 200, 300, 400, 500, 600])

        outcome = await scroll_feed(JobContext(), page, 4, scroll_config)

        assert outcome.status is PollStatus.EXHAUSTED
        assert outcome.attempts == 4
        assert outcome.height == 400
        assert len(page.evaluate_calls) == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_zero_depth_does_not_scroll(self, scroll_config):
        page = FakePage(heights=[100])

        outcome = await scroll_feed(JobContext(), page, 0, scroll_config)

        assert outcome.attempts == 0
        assert outcome.height == 0
        assert page.evaluate_calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_feed_converges_on_first_measurement(self, scroll_config):
        page = FakePage(heights=[0])

        outcome = await scroll_feed(JobContext(), page, 5, scroll_config)

        assert outcome.status is PollStatus.SETTLED
        assert outcome.attempts == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_render_wait_grows_to_ceiling(self, scroll_config):
        page = FakePage(heights=[100, 200, 300, 400, 500])

        await scroll_feed(JobContext(), page, 5, scroll_config)

        assert page.evaluate_calls == [
            ["div[role='feed']", 500],
            ["div[role='feed']", 1000],
            ["div[role='feed']", 1500],
            ["div[role='feed']", 2000],
            ["div[role='feed']", 2000],
        ]

    @pytest.mark.unit
    def test_script_scrolls_feed_and_reports_height(self):
        assert "scrollTop = el.scrollHeight" in SCROLL_FEED_JS
        assert "resolve(el.scrollHeight)" in SCROLL_FEED_JS


class TestScrollMeasureErrors:

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_height", ["250", None, 12.5, True, {"h": 1}])
    async def test_non_integer_height_rejected(self, scroll_config, bad_height):
        page = FakePage(heights=[bad_height])

        with pytest.raises(ScrollHeightTypeError) as exc_info:
            await scroll_feed(JobContext(), page, 3, scroll_config)

        assert "scrollHeight is not an int" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_integral_float_accepted(self, scroll_config):
        page = FakePage(heights=[300.0, 300.0])

        outcome = await scroll_feed(JobContext(), page, 3, scroll_config)

        assert outcome.height == 300
        assert isinstance(outcome.height, int)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_browser_error_becomes_measure_error(self, scroll_config, playwright_error):
        page = FakePage(heights=[100], evaluate_error=playwright_error)

        with pytest.raises(ScrollMeasureError) as exc_info:
            await scroll_feed(JobContext(), page, 3, scroll_config)

        assert not isinstance(exc_info.value, ScrollHeightTypeError)


class TestScrollCancellation:

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_cancelled_before_scrolling(self, scroll_config):
        ctx = JobContext()
        ctx.cancel()
        page = FakePage(heights=[100])

        outcome = await scroll_feed(ctx, page, 5, scroll_config)

        assert outcome.status is PollStatus.CANCELLED
        assert outcome.height == 0
        assert page.evaluate_calls == []

    @pytest.mark.unit
    @pytest.mark.cancellation
    @pytest.mark.asyncio
    async def test_cancelled_mid_scroll_keeps_best_height(self, scroll_config):
        ctx = JobContext()

        class CancellingPage(FakePage):
            async def evaluate(self, script, arg=None):
                height = await super().evaluate(script, arg)
                if len(self.evaluate_calls) == 2:
                    ctx.cancel()
                return height

        page = CancellingPage(heights=[100, 250, 400, 800])

        outcome = await scroll_feed(ctx, page, 10, scroll_config)

        assert outcome.status is PollStatus.CANCELLED
        assert outcome.height == 250
        assert len(page.evaluate_calls) == 2
