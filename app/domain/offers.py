"""
app/domain/offers.py

Competitor offer value objects and the money arithmetic shared by every
quote strategy.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from db.models.quote import OfferSource

CENT = Decimal("0.01")
DEFAULT_COMMISSION_RATE = Decimal("0.12")


def money(value: Decimal | int | float | str) -> Decimal:
    """Quantize to two places, rounding half up."""

    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class QuoteOffer:
    """
    One competitor's priced offer for a customer profile.

    final_price and agent_commission are derived; build offers with
    QuoteOffer.priced() so they stay consistent with premium and discount.
    """

    company_name: str
    premium: Decimal
    discount: Decimal
    final_price: Decimal
    agent_commission: Decimal
    coverage_amount: Decimal | None = None
    currency: str = "TRY"
    valid_until: str | None = None
    policy_number: str | None = None
    features: list[str] = field(default_factory=list)
    exclusions: list[str] = field(default_factory=list)
    source: str = OfferSource.LIVE
    failure_reason: str | None = None
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def priced(
        cls,
        *,
        company_name: str,
        premium: Decimal | int | float | str,
        discount: Decimal | int | float | str = Decimal("0"),
        commission_rate: Decimal = DEFAULT_COMMISSION_RATE,
        **extra: Any,
    ) -> "QuoteOffer":
        premium_value = money(premium)
        discount_value = money(discount)
        final_price = premium_value - discount_value
        return cls(
            company_name=company_name,
            premium=premium_value,
            discount=discount_value,
            final_price=final_price,
            agent_commission=money(final_price * commission_rate),
            **extra,
        )

    def as_fallback(self, reason: str) -> "QuoteOffer":
        return replace(self, source=OfferSource.SIMULATED, failure_reason=reason)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe snapshot stored alongside the persisted offer."""

        return {
            "company_name": self.company_name,
            "premium": str(self.premium),
            "discount": str(self.discount),
            "final_price": str(self.final_price),
            "agent_commission": str(self.agent_commission),
            "coverage_amount": str(self.coverage_amount) if self.coverage_amount is not None else None,
            "currency": self.currency,
            "valid_until": self.valid_until,
            "policy_number": self.policy_number,
            "features": list(self.features),
            "exclusions": list(self.exclusions),
            "source": self.source,
            "failure_reason": self.failure_reason,
            "scraped_at": self.scraped_at.isoformat(),
        }
