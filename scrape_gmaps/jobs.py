"""
Crawl jobs.

A job knows how to drive a browser page to its target (``browser_actions``)
and how to turn the captured page into a result and follow-up jobs
(``process``). The engine owns retries, timeouts and the page lifecycle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from playwright.async_api import Page

from .gmaps_config import GmapsConfig
from .gmaps_errors import DocumentTypeError
from .job_context import JobContext
from .models import JobPriority, NormalizedResponse, PlaceRecord
from .page_acquisition import PageAcquisition


class Job(ABC):
    """Base class for crawl jobs."""

    # Engine parses the page body into a document before ``process``
    needs_document: ClassVar[bool] = True

    id: str
    url: str
    lang_code: str
    max_retries: int
    priority: JobPriority
    config: Optional[GmapsConfig]

    @property
    def url_params(self) -> Dict[str, str]:
        return {"hl": self.lang_code}

    def full_url(self) -> str:
        """Target URL with the job's query parameters appended."""
        if not self.url_params:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(self.url_params)}"

    def use_in_results(self) -> bool:
        return True

    def get_config(self) -> GmapsConfig:
        return self.config or GmapsConfig()

    @abstractmethod
    async def browser_actions(self, ctx: JobContext, page: Page) -> NormalizedResponse:
        """Drive ``page`` to the job's target and capture it."""

    @abstractmethod
    async def process(
        self, ctx: JobContext, response: NormalizedResponse
    ) -> Tuple[Optional[object], List["Job"]]:
        """Turn a captured page into (result, follow-up jobs)."""


def _accept_any_url(url: str) -> bool:
    return True


@dataclass(frozen=True)
class PlaceJob(Job):
    """
    Capture the raw page of a single place.

    Created by the fan-out of a search job; carries the search job's
    identifier so results can be grouped by originating query.
    """

    needs_document: ClassVar[bool] = False

    id: str
    url: str
    lang_code: str = "en"
    extract_email: bool = False
    max_retries: int = 3
    priority: JobPriority = JobPriority.MEDIUM
    config: Optional[GmapsConfig] = field(default=None, compare=False, repr=False)

    async def browser_actions(self, ctx: JobContext, page: Page) -> NormalizedResponse:
        config = self.get_config()
        # Place URLs are final already; the first URL check settles
        acquisition = PageAcquisition(
            ctx,
            page,
            self.full_url(),
            config=config.navigation,
            settle_check=_accept_any_url,
        )
        return await acquisition.run()

    async def process(
        self, ctx: JobContext, response: NormalizedResponse
    ) -> Tuple[Optional[PlaceRecord], List[Job]]:
        try:
            if response.body is None:
                raise DocumentTypeError(f"place page has no content: {self.url}")

            record = PlaceRecord(
                id=self.id,
                url=response.url or self.url,
                status_code=response.status_code,
                content=response.body.decode("utf-8", errors="replace"),
                extract_email=self.extract_email,
            )
            return record, []
        finally:
            response.release()
