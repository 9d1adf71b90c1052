"""
Pytest configuration and shared fixtures for crawler tests.

Provides fake Playwright pages (no live browser) and configurations with
zero waits so polling loops run instantly.
"""

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from scrape_gmaps.gmaps_config import BackoffConfig, GmapsConfig, NavigationConfig, ScrollConfig


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests running the job engine end to end"
    )
    config.addinivalue_line(
        "markers", "cancellation: marks tests for cancellation and deadlines"
    )


SEARCH_URL = "https://www.google.com/maps/search/coffee+shops+berlin"
PLACE_URL = "https://www.google.com/maps/place/Cafe+Eins/@52.5,13.4,17z"

FEED_HTML = """
<html><body>
  <a href="https://www.google.com/maps/place/Outside+Feed">not in feed</a>
  <div role="feed">
    <div jsaction="mouseover:pane">
      <a href="https://www.google.com/maps/place/Cafe+Eins">Cafe Eins</a>
    </div>
    <div jsaction="mouseover:pane">
      <a href="">empty link</a>
    </div>
    <div jsaction="mouseover:pane">
      <a href="https://www.google.com/maps/place/Cafe+Zwei">Cafe Zwei</a>
    </div>
    <div jsaction="mouseover:pane">
      <span><a href="https://www.google.com/maps/place/Nested">nested</a></span>
    </div>
    <div jsaction="mouseover:pane">
      <a href="https://www.google.com/maps/place/Cafe+Drei">Cafe Drei</a>
    </div>
  </div>
</body></html>
"""

FEED_LINKS = [
    "https://www.google.com/maps/place/Cafe+Eins",
    "https://www.google.com/maps/place/Cafe+Zwei",
    "https://www.google.com/maps/place/Cafe+Drei",
]


class FakeElement:
    def __init__(self, click_error: Exception = None):
        self.click_error = click_error
        self.clicks = 0

    async def click(self):
        self.clicks += 1
        if self.click_error:
            raise self.click_error


class FakeNavResponse:
    def __init__(self, status: int = 200, headers=None):
        self.status = status
        self._headers = headers if headers is not None else [
            {"name": "Content-Type", "value": "text/html; charset=UTF-8"},
            {"name": "Set-Cookie", "value": "a=1"},
            {"name": "Set-Cookie", "value": "b=2"},
        ]

    async def headers_array(self):
        return list(self._headers)


class FakePage:
    """
    Scriptable stand-in for ``playwright.async_api.Page``.

    ``urls`` is the sequence reported by successive reads of ``page.url``
    (the last value repeats). ``heights`` is the sequence returned by
    successive feed height measurements. ``routes`` maps a navigated URL to the
    attributes the page takes on after ``goto``.
    """

    def __init__(
        self,
        urls=None,
        html: str = "<html><body></body></html>",
        heights=None,
        consent: bool = False,
        consent_click_error: Exception = None,
        goto_error: Exception = None,
        load_state_error: Exception = None,
        evaluate_error: Exception = None,
        feed_present: bool = True,
        nav_response=FakeNavResponse,
        routes=None,
    ):
        self.urls = list(urls or ["about:blank"])
        self.html = html
        self.heights = list(heights or [])
        self.consent = consent
        self.consent_click_error = consent_click_error
        self.goto_error = goto_error
        self.load_state_error = load_state_error
        self.evaluate_error = evaluate_error
        self.feed_present = feed_present
        self.nav_response = nav_response() if callable(nav_response) else nav_response
        self.routes = routes

        self.url_reads = 0
        self.goto_calls = []
        self.evaluate_calls = []
        self.consent_element = None

    @property
    def url(self) -> str:
        value = self.urls[min(self.url_reads, len(self.urls) - 1)]
        self.url_reads += 1
        return value

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append(url)
        if self.routes is not None:
            for name, value in self.routes[url].items():
                setattr(self, name, value)
        if self.goto_error:
            raise self.goto_error
        return self.nav_response

    async def wait_for_selector(self, selector, timeout=None):
        if not self.consent:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self.consent_element = FakeElement(self.consent_click_error)
        return self.consent_element

    async def wait_for_load_state(self, state=None, timeout=None):
        if self.load_state_error:
            raise self.load_state_error

    async def query_selector(self, selector):
        return FakeElement() if self.feed_present else None

    async def evaluate(self, script, arg=None):
        self.evaluate_calls.append(arg)
        if self.evaluate_error:
            raise self.evaluate_error
        index = min(len(self.evaluate_calls) - 1, len(self.heights) - 1)
        return self.heights[index]

    async def content(self):
        return self.html


class FakeContext:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class FakePageSource:
    """Page source for the job engine handing out FakePages sharing one route table."""

    def __init__(self, routes):
        self.routes = routes
        self.pages = []
        self.contexts = []
        self.cleaned_up = False

    async def get_page(self, worker_id):
        page = FakePage(routes=self.routes)
        context = FakeContext()
        self.pages.append(page)
        self.contexts.append(context)
        return page, context

    async def cleanup(self):
        self.cleaned_up = True

    def goto_calls(self):
        return [url for page in self.pages for url in page.goto_calls]


def instant_backoff(max_attempts: int) -> BackoffConfig:
    return BackoffConfig(initial_wait=0.0, multiplier=1.0, ceiling=0.0, max_attempts=max_attempts)


@pytest.fixture
def nav_config():
    """Navigation config with the real 5-check settle budget and no pauses."""
    return NavigationConfig(settle=instant_backoff(5))


@pytest.fixture
def scroll_config():
    return ScrollConfig(backoff=instant_backoff(0))


@pytest.fixture
def fast_config(tmp_path, nav_config, scroll_config):
    """Full crawler config with zero waits and logs under tmp_path."""
    config = GmapsConfig(navigation=nav_config, scroll=scroll_config)
    config.engine.retry_backoff = instant_backoff(3)
    config.engine.concurrency = 2
    config.engine.job_timeout = 5.0
    config.log_dir = str(tmp_path / "logs")
    return config


@pytest.fixture
def playwright_error():
    return PlaywrightError("net::ERR_CONNECTION_RESET")
