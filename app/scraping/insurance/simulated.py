"""
Deterministic offer generator used when live scraping is unavailable.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from app.config import QuoteScrapingSettings
from app.domain.customer_profile import CustomerProfile
from app.domain.offers import QuoteOffer, money
from app.scraping.insurance.field_maps import FieldMapRegistry
from db.models.quote import OfferSource

SIMULATED_FEATURES = ("Tam Kasko", "Çekici Hizmeti", "Yedek Araç", "Cam Kırığı")
SIMULATED_EXCLUSIONS = ("Savaş", "Terör", "Nükleer")


def _one_year_after(day: date) -> date:
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year + 1, day=28)


class SimulatedQuoteStrategy:
    """
    premium = base premium x company multiplier, with a flat discount rate.

    Allianz (multiplier 0.95) yields premium 1425.00, discount 142.50,
    final price 1282.50 and commission 153.90.
    """

    name = OfferSource.SIMULATED

    def __init__(
        self,
        *,
        registry: FieldMapRegistry,
        settings: QuoteScrapingSettings,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._registry = registry
        self._base_premium = Decimal(settings.base_premium)
        self._discount_rate = Decimal(settings.discount_rate)
        self._commission_rate = Decimal(settings.commission_rate)
        self._coverage_amount = money(settings.coverage_amount)
        self._currency = settings.currency
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def fetch(self, target: Any, profile: CustomerProfile) -> QuoteOffer:
        multiplier = self._registry.for_company(target.name).price_multiplier
        premium = money(self._base_premium * multiplier)
        discount = money(premium * self._discount_rate)
        return QuoteOffer.priced(
            company_name=target.name,
            premium=premium,
            discount=discount,
            commission_rate=self._commission_rate,
            coverage_amount=self._coverage_amount,
            currency=self._currency,
            valid_until=_one_year_after(self._today()).isoformat(),
            features=list(SIMULATED_FEATURES),
            exclusions=list(SIMULATED_EXCLUSIONS),
            source=OfferSource.SIMULATED,
        )
