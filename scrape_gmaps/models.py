"""
Data models shared by the crawler jobs and the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from bs4 import BeautifulSoup


class JobPriority(Enum):
    """Priority levels for queued jobs (lower value runs first)."""
    HIGH = 0
    MEDIUM = 1
    LOW = 2


@dataclass
class NormalizedResponse:
    """
    Outcome of one browser navigation.

    Holds a full rendered page, so the owner calls ``release()`` as soon as
    the page has been classified.
    """

    url: str = ""
    status_code: int = 0
    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: Optional[bytes] = None
    document: Optional[BeautifulSoup] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def add_header(self, name: str, value: str) -> None:
        self.headers.setdefault(name.lower(), []).append(value)

    def parse_document(self) -> Optional[BeautifulSoup]:
        """Parse ``body`` into ``document`` (lxml parser)."""
        if self.body is None:
            return None
        self.document = BeautifulSoup(self.body, "lxml")
        return self.document

    def release(self) -> None:
        """Drop the page body and parsed document."""
        self.body = None
        self.document = None


@dataclass
class PlaceRecord:
    """Raw content captured for one place page."""

    id: str
    url: str
    status_code: int
    content: str
    extract_email: bool = False
    fetched_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "status_code": self.status_code,
            "content": self.content,
            "extract_email": self.extract_email,
            "fetched_at": self.fetched_at,
        }
