"""
Persistent Async Browser Pool for the Google Maps crawler

One persistent Playwright browser per engine worker, reused across jobs.
Every job attempt gets a fresh browser context and page, which the caller
closes when the attempt ends.

Features:
- One browser per worker, restarted after ``max_pages_per_browser`` pages
- Fresh context per page (no cookies shared between jobs)
- Optional image blocking
- Graceful cleanup on shutdown
"""

import asyncio
from typing import Dict, Optional, Tuple

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright, Route, Error as PlaywrightError

from runner.logging_setup import get_logger
from .gmaps_config import PlaywrightConfig

logger = get_logger("gmaps_browser_pool")


async def _block_images(route: Route):
    if route.request.resource_type == "image":
        await route.abort()
    else:
        await route.continue_()


class AsyncBrowserPool:
    """
    Browser pool with per-worker isolation.

    Usage:
        pool = AsyncBrowserPool(config.playwright, worker_count=4)
        page, context = await pool.get_page(worker_id)
        try:
            ...
        finally:
            await context.close()
        await pool.cleanup()
    """

    def __init__(self, config: Optional[PlaywrightConfig] = None, worker_count: int = 4):
        """
        Args:
            config: Browser launch and context settings
            worker_count: Number of workers (one browser per worker)
        """
        self.config = config or PlaywrightConfig()
        self.worker_count = worker_count
        self.max_uses = self.config.max_pages_per_browser
        self.lock = asyncio.Lock()

        # Started on first use, shared by all browsers
        self.playwright_instance: Optional[Playwright] = None

        self.browsers: Dict[int, Browser] = {}
        self.usage_counts: Dict[int, int] = {}

        logger.info(f"AsyncBrowserPool initialized: {worker_count} workers, "
                    f"max {self.max_uses} pages per browser")

    async def _init_playwright(self):
        if self.playwright_instance is None:
            self.playwright_instance = await async_playwright().start()
            logger.info("Async Playwright instance started")

    async def get_browser(self, worker_id: int) -> Browser:
        """
        Get or create the persistent browser for a worker.

        Args:
            worker_id: Worker ID (0-based index)
        """
        async with self.lock:
            await self._init_playwright()

            if self.usage_counts.get(worker_id, 0) >= self.max_uses:
                logger.info(f"Browser for worker {worker_id} reached max uses "
                            f"({self.max_uses}), restarting...")
                await self._close_browser(worker_id)

            if worker_id not in self.browsers or not self.browsers[worker_id].is_connected():
                logger.info(f"Launching {self.config.browser_type} for worker {worker_id}")

                launcher = getattr(self.playwright_instance, self.config.browser_type)
                self.browsers[worker_id] = await launcher.launch(
                    headless=self.config.headless,
                    args=self.config.browser_args,
                )
                self.usage_counts[worker_id] = 0

            return self.browsers[worker_id]

    async def get_page(self, worker_id: int) -> Tuple[Page, BrowserContext]:
        """
        Get a new page with a fresh context for a worker.

        Returns:
            Tuple[Page, BrowserContext]: New page and its context.
                The caller must close the context.
        """
        browser = await self.get_browser(worker_id)

        context = await browser.new_context(**self.config.get_context_params())
        try:
            context.set_default_timeout(self.config.default_timeout)

            if self.config.block_images:
                await context.route("**/*", _block_images)

            page = await context.new_page()
        except (asyncio.CancelledError, PlaywrightError):
            # The caller never sees this context, so it has to be closed here
            await context.close()
            raise

        async with self.lock:
            self.usage_counts[worker_id] = self.usage_counts.get(worker_id, 0) + 1

        logger.debug(f"Created page for worker {worker_id} "
                     f"(usage: {self.usage_counts[worker_id]}/{self.max_uses})")

        return page, context

    async def _close_browser(self, worker_id: int):
        if worker_id in self.browsers:
            try:
                await self.browsers[worker_id].close()
                logger.info(f"Browser {worker_id} closed")
            except Exception as e:
                logger.warning(f"Error closing browser {worker_id}: {e}")
            finally:
                del self.browsers[worker_id]

        self.usage_counts.pop(worker_id, None)

    async def cleanup(self):
        """Close all browsers and the Playwright instance."""
        async with self.lock:
            logger.info("Cleaning up browser pool...")

            for worker_id in list(self.browsers.keys()):
                await self._close_browser(worker_id)

            if self.playwright_instance:
                try:
                    await self.playwright_instance.stop()
                    logger.info("Playwright instance stopped")
                except Exception as e:
                    logger.warning(f"Error stopping Playwright: {e}")
                finally:
                    self.playwright_instance = None

            logger.info("Browser pool cleanup complete")

    async def get_stats(self) -> Dict:
        async with self.lock:
            return {
                'worker_count': self.worker_count,
                'active_browsers': len(self.browsers),
                'usage_counts': dict(self.usage_counts),
                'max_uses_per_browser': self.max_uses,
                'total_pages_served': sum(self.usage_counts.values()),
            }
