"""
Page acquisition state machine.

Drives one browser page from the initial navigation to a settled
snapshot:

    NOT_STARTED -> NAVIGATING -> CONSENT_CHECK -> SETTLING_REDIRECT
        -> SETTLED                      (place URL reached)
        -> PAGINATING -> SETTLED        (listing accepted, feed scrolled)
        -> FAILED                       (any terminal error)

Each call to ``step()`` performs exactly one transition, so every failure
path can be driven and inspected on its own.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from playwright.async_api import Page, Response, Error as PlaywrightError

from runner.logging_setup import get_logger
from .backoff import BackoffPoller, PollStatus
from .gmaps_config import NavigationConfig, ScrollConfig
from .gmaps_errors import GmapsError, JobCancelled, NavigationFailure, RedirectSettleTimeout
from .job_context import JobContext
from .models import NormalizedResponse
from .scroll import ScrollOutcome, scroll_feed

logger = get_logger("gmaps_page_acquisition")


class PageState(Enum):
    NOT_STARTED = "not_started"
    NAVIGATING = "navigating"
    CONSENT_CHECK = "consent_check"
    SETTLING_REDIRECT = "settling_redirect"
    PAGINATING = "paginating"
    SETTLED = "settled"
    FAILED = "failed"


TERMINAL_STATES = (PageState.SETTLED, PageState.FAILED)


def is_place_url(url: str, marker: str = "/maps/place/") -> bool:
    """True if ``url`` points at a single place page."""
    return marker in (url or "")


class PageAcquisition:
    """
    One navigation of one page, owned by a single job attempt.

    Usage:
        acquisition = PageAcquisition(ctx, page, job.full_url(), max_depth=job.max_depth)
        response = await acquisition.run()
    """

    def __init__(
        self,
        ctx: JobContext,
        page: Page,
        url: str,
        config: Optional[NavigationConfig] = None,
        scroll_config: Optional[ScrollConfig] = None,
        max_depth: int = 0,
        settle_check: Optional[Callable[[str], bool]] = None,
    ):
        """
        Args:
            ctx: Job context observed at every browser wait
            page: Page exclusively owned by this acquisition
            url: Full target URL
            config: Navigation configuration
            scroll_config: Feed scroll configuration (listing pages only)
            max_depth: Scroll depth budget for listing pages
            settle_check: URL predicate ending the redirect wait
                (defaults to the place-page pattern)
        """
        self.ctx = ctx
        self.page = page
        self.url = url
        self.config = config or NavigationConfig()
        self.scroll_config = scroll_config or ScrollConfig()
        self.max_depth = max_depth
        self.settle_check = settle_check or (
            lambda current: is_place_url(current, self.config.place_url_marker)
        )

        self.state = PageState.NOT_STARTED
        self.response = NormalizedResponse(url=url)
        self.settle_attempts = 0
        self.scroll_outcome: Optional[ScrollOutcome] = None

        self._nav_response: Optional[Response] = None
        self._started_at: Optional[float] = None
        self._handlers: Dict[PageState, Callable[[], Awaitable[PageState]]] = {
            PageState.NOT_STARTED: self._navigate,
            PageState.NAVIGATING: self._dismiss_consent,
            PageState.CONSENT_CHECK: self._wait_for_load_state,
            PageState.SETTLING_REDIRECT: self._settle_redirect,
            PageState.PAGINATING: self._paginate,
        }

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    async def step(self) -> PageState:
        """Perform one transition and return the new state."""
        if self.done:
            return self.state

        previous = self.state
        try:
            self.state = await self._handlers[previous]()
        except GmapsError as e:
            self._fail(e)
        except PlaywrightError as e:
            self._fail(NavigationFailure(f"browser error in {previous.value}: {e}"))

        logger.debug(f"{previous.value} -> {self.state.value} ({self.url})")
        return self.state

    async def run(self) -> NormalizedResponse:
        """Step until SETTLED or FAILED."""
        self._started_at = time.time()

        while not self.done:
            await self.step()

        return self.response

    def _fail(self, error: Exception) -> None:
        self.response.error = error
        self.state = PageState.FAILED
        logger.warning(f"Page acquisition failed for {self.url}: {error}")

    # Transitions

    async def _navigate(self) -> PageState:
        try:
            self._nav_response = await self.ctx.guard(self.page.goto(
                self.url,
                wait_until=self.config.wait_until,
                timeout=self.config.navigation_timeout,
            ))
        except PlaywrightError as e:
            raise NavigationFailure(f"navigation to {self.url} failed: {e}") from e

        return PageState.NAVIGATING

    async def _dismiss_consent(self) -> PageState:
        try:
            button = await self.ctx.guard(self.page.wait_for_selector(
                self.config.consent_selector,
                timeout=self.config.consent_timeout,
            ))
        except PlaywrightError:
            # No consent dialog within the consent timeout
            return PageState.CONSENT_CHECK

        if button is None:
            return PageState.CONSENT_CHECK

        try:
            await self.ctx.guard(button.click())
        except PlaywrightError as e:
            raise NavigationFailure(f"consent dismissal failed: {e}") from e

        logger.debug("Consent dialog dismissed")
        return PageState.CONSENT_CHECK

    async def _wait_for_load_state(self) -> PageState:
        try:
            await self.ctx.guard(self.page.wait_for_load_state(
                timeout=self.config.load_state_timeout,
            ))
        except PlaywrightError as e:
            raise NavigationFailure(f"page did not finish loading: {e}") from e

        return PageState.SETTLING_REDIRECT

    async def _settle_redirect(self) -> PageState:
        poller = BackoffPoller(self.config.settle, self.ctx)

        async def current_url(attempt: int) -> str:
            return self.page.url

        result = await poller.poll(current_url, self.settle_check)
        self.settle_attempts = result.attempts

        if result.settled:
            await self._capture(result.value)
            return PageState.SETTLED

        if result.status is PollStatus.CANCELLED:
            raise JobCancelled(f"cancelled while waiting for redirect from {self.url}")

        if self.config.accept_listing_pages:
            logger.info(f"No redirect after {result.attempts} checks, treating as listing: {self.page.url}")
            return PageState.PAGINATING

        raise RedirectSettleTimeout(self.page.url)

    async def _paginate(self) -> PageState:
        if self.max_depth > 0:
            feed = await self.ctx.guard(self.page.query_selector(self.scroll_config.feed_selector))
            if feed is not None:
                self.scroll_outcome = await scroll_feed(
                    self.ctx, self.page, self.max_depth, self.scroll_config
                )
            else:
                logger.info(f"No results feed on {self.page.url}, skipping scroll")

        await self._capture(self.page.url)
        return PageState.SETTLED

    async def _capture(self, final_url: str) -> None:
        """Copy navigation metadata and snapshot the rendered page."""
        html = await self._snapshot(self.page.content())

        self.response.url = final_url
        if self._nav_response is not None:
            self.response.status_code = self._nav_response.status
            for header in await self._snapshot(self._nav_response.headers_array()):
                self.response.add_header(header["name"], header["value"])

        self.response.body = html.encode("utf-8")

        if self._started_at is not None:
            elapsed_ms = int((time.time() - self._started_at) * 1000)
            logger.info(f"Page settled: {final_url} ({elapsed_ms} ms, {len(self.response.body)} bytes)")

    async def _snapshot(self, awaitable):
        # A scroll cut short by cancellation still yields its partial feed
        if self.ctx.cancelled():
            try:
                return await asyncio.wait_for(awaitable, timeout=self.config.snapshot_grace)
            except asyncio.TimeoutError as e:
                raise JobCancelled(f"snapshot of {self.url} timed out after cancellation") from e
        return await self.ctx.guard(awaitable)
