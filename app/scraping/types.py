"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class ScrapeStats:
    """
    Counters attached to a ScraperRun as stats_json.

    data_extracted counts rows actually written; duplicates of already
    stored content count as successful pages but add nothing here.
    """

    total_pages: int = 0
    success_pages: int = 0
    error_pages: int = 0
    data_extracted: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["duration_seconds"] = round(self.duration_seconds, 3)
        return payload


@dataclass(frozen=True)
class ExtractedPage:
    url: str
    raw: dict[str, Any]
    normalized: dict[str, Any]
    links: list[str] = field(default_factory=list)
