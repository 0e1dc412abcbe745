"""
db/models/scraped_row.py

Content-addressed record extracted from a target page.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType


class ScrapedRow(Base):
    """
    hash_key is a digest over (base URL, extracted field map). The unique
    constraint on it is what keeps re-scrapes of unchanged pages from
    growing the table.
    """

    __tablename__ = "scraped_rows"

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
    hash_key: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    row_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    raw_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    normalized_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("hash_key", name="uq_scraped_rows_hash_key"),
        Index("ix_scraped_rows_target_id", "target_id"),
        Index("ix_scraped_rows_created_at", "created_at"),
    )
