"""
Search job: one Google Maps query.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from playwright.async_api import Page

from .fanout import fan_out
from .gmaps_config import GmapsConfig
from .gmaps_errors import DocumentTypeError
from .job_context import JobContext
from .jobs import Job
from .models import JobPriority, NormalizedResponse
from .page_acquisition import PageAcquisition


@dataclass(frozen=True)
class SearchJob(Job):
    """
    Navigate to a search and fan the settled page out into place jobs.

    Build with ``SearchJob.create`` so the URL is filled in; an empty
    identifier is replaced by a uuid4.
    """

    id: str
    url: str
    query: str = ""
    lang_code: str = "en"
    max_depth: int = 0
    extract_email: bool = False
    max_retries: int = 3
    priority: JobPriority = JobPriority.LOW
    config: Optional[GmapsConfig] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", str(uuid.uuid4()))

    @classmethod
    def create(
        cls,
        query: str,
        lang_code: str = "en",
        max_depth: int = 0,
        extract_email: bool = False,
        id: str = "",
        config: Optional[GmapsConfig] = None,
    ) -> "SearchJob":
        """
        Args:
            query: Free-text search
            lang_code: Interface language (``hl`` parameter)
            max_depth: Feed scroll budget
            extract_email: Passed on to the place jobs
            id: Caller identifier; a uuid4 is generated when empty
            config: Crawler configuration shared with the place jobs
        """
        base_url = (config or GmapsConfig()).google_maps_search_url
        return cls(
            id=id,
            url=base_url + quote_plus(query),
            query=query,
            lang_code=lang_code,
            max_depth=max_depth,
            extract_email=extract_email,
            config=config,
        )

    def use_in_results(self) -> bool:
        return False

    async def browser_actions(self, ctx: JobContext, page: Page) -> NormalizedResponse:
        config = self.get_config()
        acquisition = PageAcquisition(
            ctx,
            page,
            self.full_url(),
            config=config.navigation,
            scroll_config=config.scroll,
            max_depth=self.max_depth,
        )
        return await acquisition.run()

    async def process(
        self, ctx: JobContext, response: NormalizedResponse
    ) -> Tuple[None, List[Job]]:
        try:
            if not isinstance(response.document, BeautifulSoup):
                raise DocumentTypeError(
                    f"expected a parsed HTML document, got {type(response.document).__name__}"
                )

            return None, fan_out(self, response.url, response.document)
        finally:
            response.release()
