"""
Feed pagination for Google Maps search results.

The results feed loads more places each time it is scrolled to the
bottom. Scrolling stops when the feed height stops changing or the depth
budget runs out.
"""

from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Page, Error as PlaywrightError

from runner.logging_setup import get_logger
from .backoff import BackoffPoller, PollStatus
from .gmaps_config import ScrollConfig
from .gmaps_errors import ScrollMeasureError, ScrollHeightTypeError
from .job_context import JobContext

logger = get_logger("gmaps_scroll")


# Scroll the feed to its bottom, give it waitMs to render, report the new height
SCROLL_FEED_JS = """
async ([selector, waitMs]) => {
    const el = document.querySelector(selector);
    el.scrollTop = el.scrollHeight;

    return new Promise((resolve) => {
        setTimeout(() => resolve(el.scrollHeight), waitMs);
    });
}
"""


@dataclass
class ScrollOutcome:
    attempts: int
    height: int
    status: PollStatus


def _as_height(value) -> int:
    # bool is an int subclass but never a height
    if isinstance(value, bool):
        raise ScrollHeightTypeError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ScrollHeightTypeError(value)


async def scroll_feed(
    ctx: JobContext,
    page: Page,
    max_depth: int,
    config: Optional[ScrollConfig] = None,
) -> ScrollOutcome:
    """
    Scroll the results feed until it stops growing.

    Args:
        ctx: Job context; cancellation returns the best height so far
        page: Page showing a search results feed
        max_depth: Maximum number of scroll attempts (0 = no scrolling)
        config: Scroll configuration

    Returns:
        ScrollOutcome with attempts made and last measured height

    Raises:
        ScrollHeightTypeError: If the height measurement returns a non-integer
        ScrollMeasureError: If the measurement fails in the browser (e.g. no feed)
    """
    config = config or ScrollConfig()
    poller = BackoffPoller(config.backoff, ctx)
    previous_height = 0

    async def measure(attempt: int) -> int:
        wait_ms = config.render_wait_for(attempt)
        try:
            raw = await ctx.guard(page.evaluate(SCROLL_FEED_JS, [config.feed_selector, wait_ms]))
        except PlaywrightError as e:
            raise ScrollMeasureError(f"feed scroll failed: {e}") from e
        return _as_height(raw)

    def is_done(height: int) -> bool:
        nonlocal previous_height
        if height == previous_height:
            return True
        previous_height = height
        return False

    result = await poller.poll(measure, is_done, max_attempts=max_depth, initial=0)

    logger.debug(
        f"Feed scroll finished: {result.status.value} after {result.attempts} attempts, "
        f"height={result.value}"
    )

    return ScrollOutcome(attempts=result.attempts, height=result.value, status=result.status)
