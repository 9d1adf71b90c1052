"""
Google Maps Crawler - Configuration Management

Centralized configuration for the search/place crawl.

Features:
- Backoff timing for redirect settling, feed scrolling and job retries
- Navigation timeouts and selectors
- Playwright browser settings
- Engine concurrency and retry budget
"""

import os
import random
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass, field

from .gmaps_errors import ConfigurationError


@dataclass
class BackoffConfig:
    """
    Wait schedule for a bounded polling loop.

    The first wait is ``initial_wait`` seconds, every following wait is the
    previous one times ``multiplier``, clamped at ``ceiling``.
    """

    initial_wait: float = 0.1
    multiplier: float = 1.5
    ceiling: float = 2.0
    max_attempts: int = 10

    def intervals(self, max_attempts: Optional[int] = None) -> Iterator[float]:
        """
        Yield one wait duration per attempt.

        Args:
            max_attempts: Override for ``self.max_attempts``

        Yields:
            Wait durations in seconds, non-decreasing and <= ceiling
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        wait = min(self.initial_wait, self.ceiling)

        for _ in range(attempts):
            yield wait
            wait = min(wait * self.multiplier, self.ceiling)


@dataclass
class NavigationConfig:
    """Page acquisition timing and selectors."""

    # Page load wait strategy for the initial navigation
    wait_until: str = "domcontentloaded"

    # Navigation timeout (ms)
    navigation_timeout: int = 60000

    # Cookie consent dismissal
    consent_selector: str = 'form[action="https://consent.google.com/save"]:first-of-type button:first-of-type'
    consent_timeout: int = 500  # ms

    # Load-state wait after search redirects (ms)
    load_state_timeout: int = 10000

    # URL fragment identifying a single place page
    place_url_marker: str = "/maps/place/"

    # Redirect settling: fixed 2s pause, 5 checks
    settle: BackoffConfig = field(default_factory=lambda: BackoffConfig(
        initial_wait=2.0,
        multiplier=1.0,
        ceiling=2.0,
        max_attempts=5,
    ))

    # Treat a search that stays on a listing URL as a feed instead of failing
    accept_listing_pages: bool = False

    # Time allowed to snapshot a page after its job was cancelled (seconds)
    snapshot_grace: float = 5.0


@dataclass
class ScrollConfig:
    """Feed pagination configuration."""

    feed_selector: str = "div[role='feed']"

    # In-page wait for new results after each scroll (ms)
    render_wait: int = 500
    render_wait_ceiling: int = 2000

    # Pause between scroll attempts; max_attempts comes from the job depth
    backoff: BackoffConfig = field(default_factory=lambda: BackoffConfig(
        initial_wait=0.1,
        multiplier=1.5,
        ceiling=2.0,
        max_attempts=0,
    ))

    def render_wait_for(self, attempt: int) -> int:
        """In-page wait for a 1-based attempt number, in milliseconds."""
        return min(self.render_wait * max(attempt, 1), self.render_wait_ceiling)


@dataclass
class PlaywrightConfig:
    """Playwright browser configuration."""

    # Browser type
    browser_type: str = "chromium"  # chromium, firefox, or webkit

    # Headless mode (False = visible browser, True = headless)
    headless: bool = True

    # Browser launch arguments
    browser_args: List[str] = field(default_factory=lambda: [
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
        "--no-sandbox",
    ])

    # Viewport size
    viewport_width: int = 1920
    viewport_height: int = 1080

    # Default timeout for actions (ms)
    default_timeout: int = 30000

    # Skip image downloads to keep pages light
    block_images: bool = True

    # Restart a worker's browser after this many pages
    max_pages_per_browser: int = 100

    user_agents: List[str] = field(default_factory=lambda: [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ])

    locale: str = "en-US"

    def get_random_user_agent(self) -> str:
        """Get a random user agent."""
        return random.choice(self.user_agents)

    def get_context_params(self) -> Dict:
        """Keyword arguments for ``Browser.new_context``."""
        return {
            "user_agent": self.get_random_user_agent(),
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "locale": self.locale,
        }


@dataclass
class EngineConfig:
    """Job engine configuration."""

    # Concurrent workers (one browser each)
    concurrency: int = 4

    # Upper bound for one job attempt (seconds)
    job_timeout: float = 300.0

    # Delay between retries of a failed job
    retry_backoff: BackoffConfig = field(default_factory=lambda: BackoffConfig(
        initial_wait=3.0,
        multiplier=2.0,
        ceiling=30.0,
        max_attempts=3,
    ))


@dataclass
class GmapsConfig:
    """
    Master configuration for the Google Maps crawler.

    Combines all sub-configurations with defaults matching the
    observed Google Maps behavior.
    """

    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    scroll: ScrollConfig = field(default_factory=ScrollConfig)
    playwright: PlaywrightConfig = field(default_factory=PlaywrightConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)

    # Logging
    log_dir: str = "logs"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Search defaults
    google_maps_search_url: str = "https://www.google.com/maps/search/"
    lang_code: str = "en"
    max_depth: int = 10
    extract_email: bool = False

    @classmethod
    def from_env(cls) -> "GmapsConfig":
        """
        Create configuration from environment variables.

        Returns:
            GmapsConfig instance
        """
        config = cls()

        # Override with environment variables if present
        if os.getenv("GMAPS_HEADLESS"):
            config.playwright.headless = os.getenv("GMAPS_HEADLESS").lower() == "true"

        if os.getenv("GMAPS_CONCURRENCY"):
            config.engine.concurrency = int(os.getenv("GMAPS_CONCURRENCY"))

        if os.getenv("GMAPS_JOB_TIMEOUT"):
            config.engine.job_timeout = float(os.getenv("GMAPS_JOB_TIMEOUT"))

        if os.getenv("GMAPS_LANG"):
            config.lang_code = os.getenv("GMAPS_LANG")

        if os.getenv("GMAPS_MAX_DEPTH"):
            config.max_depth = int(os.getenv("GMAPS_MAX_DEPTH"))

        if os.getenv("GMAPS_EXTRACT_EMAIL"):
            config.extract_email = os.getenv("GMAPS_EXTRACT_EMAIL").lower() == "true"

        if os.getenv("GMAPS_ACCEPT_LISTING_PAGES"):
            config.navigation.accept_listing_pages = os.getenv("GMAPS_ACCEPT_LISTING_PAGES").lower() == "true"

        if os.getenv("GMAPS_LOG_DIR"):
            config.log_dir = os.getenv("GMAPS_LOG_DIR")

        if os.getenv("GMAPS_LOG_LEVEL"):
            config.log_level = os.getenv("GMAPS_LOG_LEVEL")

        return config

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ConfigurationError: If a value is out of range
        """
        for name, backoff in (
            ("navigation.settle", self.navigation.settle),
            ("scroll.backoff", self.scroll.backoff),
            ("engine.retry_backoff", self.engine.retry_backoff),
        ):
            if backoff.initial_wait < 0 or backoff.ceiling < 0:
                raise ConfigurationError(f"{name}: waits must be >= 0")
            if backoff.multiplier < 1.0:
                raise ConfigurationError(f"{name}: multiplier must be >= 1.0")
            if backoff.max_attempts < 0:
                raise ConfigurationError(f"{name}: max_attempts must be >= 0")

        if self.max_depth < 0:
            raise ConfigurationError("max_depth must be >= 0")

        if self.engine.concurrency < 1:
            raise ConfigurationError("engine.concurrency must be >= 1")

        if self.engine.job_timeout <= 0:
            raise ConfigurationError("engine.job_timeout must be > 0")

        if self.playwright.browser_type not in ("chromium", "firefox", "webkit"):
            raise ConfigurationError(f"unknown browser type: {self.playwright.browser_type}")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"unknown log level: {self.log_level}")

    def summary(self) -> Dict[str, any]:
        """
        Get configuration summary for logging.

        Returns:
            Dictionary with key configuration values
        """
        return {
            "navigation": {
                "settle_attempts": self.navigation.settle.max_attempts,
                "settle_pause_s": self.navigation.settle.initial_wait,
                "accept_listing_pages": self.navigation.accept_listing_pages,
            },
            "scroll": {
                "max_depth": self.max_depth,
                "wait_ceiling_s": self.scroll.backoff.ceiling,
            },
            "playwright": {
                "browser": self.playwright.browser_type,
                "headless": self.playwright.headless,
            },
            "engine": {
                "concurrency": self.engine.concurrency,
                "job_timeout_s": self.engine.job_timeout,
            },
            "lang_code": self.lang_code,
            "extract_email": self.extract_email,
        }


# Convenience function for getting default config
def get_config() -> GmapsConfig:
    """
    Get GmapsConfig instance with environment overrides.

    Returns:
        GmapsConfig instance
    """
    return GmapsConfig.from_env()
