"""
app/domain/target_scraping.py

Domain models for operator-driven target scrape runs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TargetScrapeSummary:
    """
    Summary for one target scrape run.
    """

    target_id: uuid.UUID
    target_name: str
    run_id: uuid.UUID
    engine: str
    status: str
    stats: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
