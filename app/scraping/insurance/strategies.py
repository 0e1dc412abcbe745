"""
Quote strategy protocol and the live-then-simulated fallback.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from playwright.sync_api import Error as PlaywrightError

from app.domain.customer_profile import CustomerProfile
from app.domain.offers import QuoteOffer
from app.scraping.errors import ScrapeError
from app.scraping.logging_utils import error_fields, log_event

logger = logging.getLogger(__name__)


class QuoteStrategy(Protocol):
    name: str

    def fetch(self, target: Any, profile: CustomerProfile) -> QuoteOffer:
        ...


class FallbackQuoteStrategy:
    """
    Try `primary`; on a scrape or browser failure return the `fallback`
    offer, marked simulated and carrying the failure reason.
    """

    def __init__(self, primary: QuoteStrategy, fallback: QuoteStrategy) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def fetch(self, target: Any, profile: CustomerProfile) -> QuoteOffer:
        try:
            return self.primary.fetch(target, profile)
        except (ScrapeError, PlaywrightError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "quote_fallback_used",
                company=target.name,
                **error_fields(exc),
            )
            offer = self.fallback.fetch(target, profile)
            return offer.as_fallback(f"{type(exc).__name__}: {exc}")
