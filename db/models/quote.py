"""
db/models/quote.py

Quote request and the competitor offers scraped for it.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from db.models.customer import Customer


class QuoteStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    APPROVED = "approved"


class ScrapedQuoteStatus:
    SCRAPED = "scraped"
    ERROR = "error"


class OfferSource:
    LIVE = "live"
    SIMULATED = "simulated"


class Quote(Base, TimestampMixin):
    """
    A customer's request for comparative coverage.

    status only moves forward; see app.domain.quote_lifecycle.
    """

    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    agent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vehicle_plate: Mapped[str | None] = mapped_column(String(32), nullable=True)
    vehicle_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vehicle_brand: Mapped[str | None] = mapped_column(String(120), nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String(120), nullable=True)
    engine_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    chassis_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    coverage_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="kasko, trafik, dask, saglik",
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=QuoteStatus.PENDING,
    )
    valid_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    customer: Mapped["Customer"] = relationship("Customer")
    scraped_quotes: Mapped[list["ScrapedQuote"]] = relationship(
        "ScrapedQuote",
        back_populates="quote",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_quotes_customer_id", "customer_id"),
        Index("ix_quotes_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Quote id={self.id} status={self.status!r}>"


class ScrapedQuote(Base, TimestampMixin):
    """
    One competitor's offer against a quote. At most one per (quote, target).
    """

    __tablename__ = "scraped_quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("scraper_targets.id", ondelete="SET NULL"),
        nullable=True,
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_logo: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    premium: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    coverage_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    discount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    final_price: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="premium - discount; NULL for error rows",
    )
    agent_commission: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ScrapedQuoteStatus.SCRAPED,
    )
    source: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=OfferSource.LIVE,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    quote: Mapped["Quote"] = relationship("Quote", back_populates="scraped_quotes")

    __table_args__ = (
        UniqueConstraint("quote_id", "target_id", name="uq_scraped_quotes_quote_target"),
        Index("ix_scraped_quotes_quote_id_final_price", "quote_id", "final_price"),
    )
