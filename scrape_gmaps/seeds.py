"""
Seed input: one search query per line, optionally tagged with an
identifier as ``<query> #!# <id>``.
"""

from typing import Iterable, List, Optional, Tuple

from .gmaps_config import GmapsConfig
from .search_job import SearchJob

SEED_ID_DELIMITER = "#!#"


def parse_seed_line(line: str) -> Tuple[str, str]:
    """
    Split a seed line into (query, identifier).

    The identifier is empty when the line carries no delimiter.
    """
    query = line.strip()
    identifier = ""

    if SEED_ID_DELIMITER in query:
        before, _, after = query.partition(SEED_ID_DELIMITER)
        query = before.strip()
        identifier = after.strip()

    return query, identifier


def create_seed_jobs(
    lang_code: str,
    lines: Iterable[str],
    max_depth: int,
    extract_email: bool,
    config: Optional[GmapsConfig] = None,
) -> List[SearchJob]:
    """Build one SearchJob per non-blank line."""
    jobs = []

    for line in lines:
        if not line.strip():
            continue

        query, identifier = parse_seed_line(line)
        jobs.append(SearchJob.create(
            query,
            lang_code=lang_code,
            max_depth=max_depth,
            extract_email=extract_email,
            id=identifier,
            config=config,
        ))

    return jobs
