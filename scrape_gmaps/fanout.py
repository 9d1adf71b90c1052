"""
Fan-out of a settled search page into place jobs.
"""

from typing import List

from bs4 import BeautifulSoup

from runner.logging_setup import get_logger
from .jobs import Job, PlaceJob
from .page_acquisition import is_place_url

logger = get_logger("gmaps_fanout")

# Place links inside the results feed
FEED_LINK_SELECTOR = "div[role=feed] div[jsaction] > a"


def extract_place_links(document: BeautifulSoup) -> List[str]:
    """Non-empty feed link hrefs, in document order."""
    links = []
    for anchor in document.select(FEED_LINK_SELECTOR):
        href = anchor.get("href", "")
        if href:
            links.append(href)
    return links


def fan_out(parent: Job, final_url: str, document: BeautifulSoup) -> List[PlaceJob]:
    """
    Decide the follow-up jobs for a settled search page.

    Args:
        parent: Search job whose identifier and settings the children inherit
        final_url: URL the page settled on
        document: Parsed page

    Returns:
        One job when the search redirected to a place page, otherwise one
        job per feed link (possibly none)
    """
    config = parent.get_config()

    if is_place_url(final_url, config.navigation.place_url_marker):
        urls = [final_url]
    else:
        urls = extract_place_links(document)

    jobs = [
        PlaceJob(
            id=parent.id,
            url=url,
            lang_code=parent.lang_code,
            extract_email=parent.extract_email,
            config=parent.config,
        )
        for url in urls
    ]

    logger.info(f"{len(jobs)} places found")
    return jobs
