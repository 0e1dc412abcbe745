"""
db/models/policy.py

Issued insurance policy, optionally traced back to an approved offer.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class PolicyStatus:
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Policy(Base, TimestampMixin):
    __tablename__ = "policies"

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
    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="SET NULL"),
        nullable=True,
    )
    scraped_quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("scraped_quotes.id", ondelete="SET NULL"),
        nullable=True,
    )
    policy_number: Mapped[str] = mapped_column(String(32), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    premium: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PolicyStatus.ACTIVE,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("policy_number", name="uq_policies_policy_number"),
        Index("ix_policies_quote_id", "quote_id"),
    )

    def __repr__(self) -> str:
        return f"<Policy id={self.id} number={self.policy_number!r} status={self.status!r}>"
