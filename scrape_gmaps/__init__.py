"""
Google Maps crawler core.

Search jobs navigate to a Maps query, settle on a place or listing page
and fan out into place jobs; the job engine runs them on a pool of
Playwright browsers.
"""

from .gmaps_config import GmapsConfig, BackoffConfig, get_config
from .gmaps_errors import (
    GmapsError,
    ConfigurationError,
    NavigationFailure,
    RedirectSettleTimeout,
    ScrollMeasureError,
    ScrollHeightTypeError,
    DocumentTypeError,
    JobCancelled,
)
from .job_context import JobContext
from .backoff import BackoffPoller, PollResult, PollStatus
from .scroll import scroll_feed
from .page_acquisition import PageAcquisition, PageState
from .models import JobPriority, NormalizedResponse, PlaceRecord
from .jobs import Job, PlaceJob
from .search_job import SearchJob
from .fanout import fan_out
from .seeds import parse_seed_line, create_seed_jobs
from .job_engine import JobEngine

__all__ = [
    "GmapsConfig",
    "BackoffConfig",
    "get_config",
    "GmapsError",
    "ConfigurationError",
    "NavigationFailure",
    "RedirectSettleTimeout",
    "ScrollMeasureError",
    "ScrollHeightTypeError",
    "DocumentTypeError",
    "JobCancelled",
    "JobContext",
    "BackoffPoller",
    "PollResult",
    "PollStatus",
    "scroll_feed",
    "PageAcquisition",
    "PageState",
    "JobPriority",
    "NormalizedResponse",
    "PlaceRecord",
    "Job",
    "PlaceJob",
    "SearchJob",
    "fan_out",
    "parse_seed_line",
    "create_seed_jobs",
    "JobEngine",
]
