"""
Google Maps Crawler - Error Types

Terminal failures raised or reported by the navigation state machine,
the scroll driver and job processing. A missing consent dialog is not
an error and has no type here.
"""


class GmapsError(Exception):
    """Base class for crawler errors."""
    pass


class ConfigurationError(GmapsError):
    """Raised when crawler configuration is missing or invalid."""
    pass


class NavigationFailure(GmapsError):
    """Navigation, consent dismissal or load-state wait failed."""
    pass


class RedirectSettleTimeout(GmapsError):
    """The page never settled on a place URL within the allowed attempts."""

    def __init__(self, url: str):
        super().__init__(f"unexpected URL after navigation: {url}")
        self.url = url


class ScrollMeasureError(GmapsError):
    """Measuring the feed height failed inside the browser."""
    pass


class ScrollHeightTypeError(ScrollMeasureError):
    """The feed height measurement returned something other than an integer height."""

    def __init__(self, value):
        super().__init__(f"scrollHeight is not an int: {value!r}")
        self.value = value


class DocumentTypeError(GmapsError):
    """The captured page content is not a parsed HTML document."""
    pass


class JobCancelled(GmapsError):
    """The job context was cancelled or its deadline passed."""
    pass
