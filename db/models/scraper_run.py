"""
db/models/scraper_run.py

One execution of a scrape job against a target. Append-only history.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from db.models.scraper_target import ScraperTarget


class ScraperRunStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ScraperRun(Base, TimestampMixin):
    __tablename__ = "scraper_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    target_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scraper_targets.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ScraperRunStatus.PENDING,
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    stats_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="total_pages, success_pages, error_pages, data_extracted, duration_seconds",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    target: Mapped["ScraperTarget"] = relationship(
        "ScraperTarget",
        back_populates="runs",
    )

    __table_args__ = (
        Index("ix_scraper_runs_target_id", "target_id"),
        Index("ix_scraper_runs_status", "status"),
        Index("ix_scraper_runs_created_at", "created_at"),
    )
