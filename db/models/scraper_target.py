"""
db/models/scraper_target.py

Scrape target model: one external website/company configured for scraping.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from db.models.scraper_run import ScraperRun


class ScraperTarget(Base, TimestampMixin):
    """
    A scrape-able insurance company site.

    enabled gates the operator sweep (scrape:all); is_active gates quote
    aggregation. use_headless selects the browser engine over the static
    collector. The *_json columns are opaque operator-supplied configuration.
    """

    __tablename__ = "scraper_targets"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    logo_url: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
    )
    base_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    use_headless: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    rate_limit_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1000,
        comment="Minimum gap between requests to this target's domain",
    )
    headers_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    cookies_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    selector_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Explicit field -> CSS selector map",
    )

    runs: Mapped[list["ScraperRun"]] = relationship(
        "ScraperRun",
        back_populates="target",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_scraper_targets_enabled", "enabled"),
        Index("ix_scraper_targets_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ScraperTarget id={self.id} name={self.name!r} headless={self.use_headless}>"
