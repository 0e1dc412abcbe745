"""
Repository for quotes, the offers scraped against them and issued policies.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.policy import Policy, PolicyStatus
from db.models.quote import Quote, QuoteStatus, ScrapedQuote
from db.repositories.errors import PolicyNumberConflictError, RecordNotFoundError

POLICY_NUMBER_ATTEMPTS = 5


class QuoteRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def create_quote(
        self,
        *,
        customer_id: uuid.UUID,
        product_id: uuid.UUID,
        agent_id: uuid.UUID,
        coverage_type: str,
        start_date: date,
        end_date: date,
        vehicle: dict[str, Any] | None = None,
        additional_info: str | None = None,
        valid_until: datetime | None = None,
    ) -> Quote:
        vehicle = vehicle or {}
        quote = Quote(
            customer_id=customer_id,
            product_id=product_id,
            agent_id=agent_id,
            coverage_type=coverage_type,
            start_date=start_date,
            end_date=end_date,
            vehicle_plate=vehicle.get("plate"),
            vehicle_year=vehicle.get("year"),
            vehicle_brand=vehicle.get("brand"),
            vehicle_model=vehicle.get("model"),
            engine_number=vehicle.get("engine_number"),
            chassis_number=vehicle.get("chassis_number"),
            additional_info=additional_info,
            valid_until=valid_until,
            status=QuoteStatus.PENDING,
        )
        self._session.add(quote)
        self._session.flush()
        return quote

    def get_quote(self, quote_id: uuid.UUID) -> Quote | None:
        return self._session.get(Quote, quote_id)

    def get_quote_required(self, quote_id: uuid.UUID) -> Quote:
        quote = self.get_quote(quote_id)
        if quote is None:
            raise RecordNotFoundError(f"Quote not found: {quote_id}")
        return quote

    def set_status(self, quote: Quote, status: str) -> Quote:
        quote.status = status
        return quote

    # ------------------------------------------------------------------
    # Scraped offers
    # ------------------------------------------------------------------

    def add_scraped_quote(self, **values: Any) -> ScrapedQuote:
        values.setdefault("scraped_at", datetime.now(timezone.utc))
        offer = ScrapedQuote(**values)
        self._session.add(offer)
        self._session.flush()
        return offer

    def get_scraped_quote(self, scraped_quote_id: uuid.UUID) -> ScrapedQuote | None:
        return self._session.get(ScrapedQuote, scraped_quote_id)

    def target_ids_with_offers(self, quote_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(ScrapedQuote.target_id).where(ScrapedQuote.quote_id == quote_id)
        return {target_id for target_id in self._session.scalars(stmt).all() if target_id is not None}

    def list_scraped_quotes(self, quote_id: uuid.UUID) -> list[ScrapedQuote]:
        """Offers ordered by ascending final price; rows without a price last."""

        stmt: Select[tuple[ScrapedQuote]] = (
            select(ScrapedQuote)
            .where(ScrapedQuote.quote_id == quote_id)
            .order_by(
                ScrapedQuote.final_price.is_(None),
                ScrapedQuote.final_price.asc(),
                ScrapedQuote.company_name.asc(),
            )
        )
        return list(self._session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def next_policy_number(self, year: int | None = None) -> str:
        year = year or datetime.now(timezone.utc).year
        prefix = f"POL-{year}-"
        stmt = select(func.count()).select_from(Policy).where(Policy.policy_number.like(f"{prefix}%"))
        count = int(self._session.scalar(stmt) or 0)
        return f"{prefix}{count + 1:06d}"

    def create_policy(
        self,
        *,
        customer_id: uuid.UUID,
        product_id: uuid.UUID,
        agent_id: uuid.UUID,
        company_name: str,
        premium: Decimal,
        start_date: date,
        end_date: date,
        quote_id: uuid.UUID | None = None,
        scraped_quote_id: uuid.UUID | None = None,
    ) -> Policy:
        """
        Insert an active policy under a freshly allocated policy number.

        A concurrent writer can take the same sequence value; the unique
        constraint rejects the loser, which bumps the sequence and retries.
        """

        year = datetime.now(timezone.utc).year
        policy_number = self.next_policy_number(year)
        for _ in range(POLICY_NUMBER_ATTEMPTS):
            policy = Policy(
                customer_id=customer_id,
                product_id=product_id,
                agent_id=agent_id,
                quote_id=quote_id,
                scraped_quote_id=scraped_quote_id,
                policy_number=policy_number,
                company_name=company_name,
                premium=premium,
                status=PolicyStatus.ACTIVE,
                start_date=start_date,
                end_date=end_date,
            )
            try:
                with self._session.begin_nested():
                    self._session.add(policy)
            except IntegrityError:
                sequence = int(policy_number.rsplit("-", 1)[1]) + 1
                policy_number = f"POL-{year}-{sequence:06d}"
                continue
            return policy

        raise PolicyNumberConflictError(
            f"Could not allocate a unique policy number after {POLICY_NUMBER_ATTEMPTS} attempts."
        )

    def list_policies_for_quote(self, quote_id: uuid.UUID) -> list[Policy]:
        stmt = select(Policy).where(Policy.quote_id == quote_id).order_by(Policy.created_at.asc())
        return list(self._session.scalars(stmt).all())
