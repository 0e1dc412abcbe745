"""
quote:scrape handler: collect one offer per active target for a quote.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import HeadlessSettings, QuoteScrapingSettings
from app.domain.customer_profile import CustomerProfile
from app.domain.offers import QuoteOffer
from app.domain.quote_lifecycle import TERMINAL_FOR_SCRAPING, ensure_transition
from app.jobs.errors import NonRetryableJobError
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import QUOTE_SCRAPE, QuoteScrapePayload, decode_payload
from app.scraping.errors import BrowserUnavailableError, ScrapeError
from app.scraping.headless import BrowserSession, HeadlessEngine
from app.scraping.insurance import (
    FallbackQuoteStrategy,
    FieldMapRegistry,
    LiveQuoteStrategy,
    QuoteStrategy,
    SimulatedQuoteStrategy,
    build_customer_profile,
    get_field_map_registry,
)
from app.scraping.logging_utils import error_fields, log_event
from db.models.quote import OfferSource, Quote, QuoteStatus, ScrapedQuoteStatus
from db.models.scraper_target import ScraperTarget
from db.repositories.customer_repository import CustomerRepository
from db.repositories.quote_repository import QuoteRepository
from db.repositories.scraper_repository import ScraperTargetRepository
from db.session import SessionFactory, session_scope

logger = logging.getLogger(__name__)


class QuoteScrapeHandler:
    """
    Claims the quote, fetches an offer from every active target and marks
    the quote completed.

    Targets that already hold an offer for the quote are skipped, so a
    retried job only fills the gaps. A failed fetch is stored as an
    `error` offer and does not stop the loop.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        headless_settings: HeadlessSettings,
        quote_settings: QuoteScrapingSettings,
        registry: FieldMapRegistry | None = None,
        browser_factory: Callable[[], BrowserSession] = BrowserSession,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._headless_settings = headless_settings
        self._quote_settings = quote_settings
        self._registry = registry or get_field_map_registry()
        self._browser_factory = browser_factory
        self._sleep = sleep

    def register(self, orchestrator: TaskOrchestrator) -> None:
        orchestrator.register(QUOTE_SCRAPE, self.handle)

    def handle(self, data: dict[str, Any]) -> None:
        payload = decode_payload(QuoteScrapePayload, data)
        with session_scope(self._session_factory) as session:
            quotes = QuoteRepository(session)
            quote = quotes.get_quote(payload.quote_id)
            if quote is None:
                raise NonRetryableJobError(f"Quote not found: {payload.quote_id}")
            if quote.status in TERMINAL_FOR_SCRAPING:
                log_event(
                    logger,
                    logging.INFO,
                    "quote_scrape_skipped",
                    quote_id=quote.id,
                    status=quote.status,
                )
                return

            quote.status = ensure_transition(quote.status, QuoteStatus.PROCESSING)
            session.commit()

            customer = CustomerRepository(session).get(quote.customer_id)
            if customer is None:
                raise NonRetryableJobError(f"Customer not found for quote {quote.id}")
            profile = build_customer_profile(customer, quote)

            done = quotes.target_ids_with_offers(quote.id)
            targets = [
                target
                for target in ScraperTargetRepository(session).list_active()
                if target.id not in done
            ]
            log_event(
                logger,
                logging.INFO,
                "quote_scrape_started",
                quote_id=quote.id,
                targets=len(targets),
                already_offered=len(done),
            )

            stored = 0
            with self.strategy_scope() as strategy:
                for index, target in enumerate(targets):
                    if index > 0 and self._quote_settings.inter_target_delay_ms > 0:
                        self._sleep(self._quote_settings.inter_target_delay_ms / 1000.0)
                    stored += self._scrape_target(session, quotes, quote, target, strategy, profile)

            quote.status = ensure_transition(quote.status, QuoteStatus.COMPLETED)
            session.commit()
            log_event(
                logger,
                logging.INFO,
                "quote_scrape_completed",
                quote_id=quote.id,
                offers_stored=stored,
            )

    @contextmanager
    def strategy_scope(self) -> Iterator[QuoteStrategy]:
        """
        Yield the strategy for this job; the browser, if one was launched,
        is closed when the scope exits.
        """

        simulated = SimulatedQuoteStrategy(registry=self._registry, settings=self._quote_settings)
        if not self._headless_settings.enabled:
            yield simulated
            return

        browser = self._browser_factory()
        launched = True
        try:
            browser.start()
        except BrowserUnavailableError as exc:
            log_event(logger, logging.WARNING, "browser_unavailable_simulating", **error_fields(exc))
            launched = False
        if not launched:
            yield simulated
            return

        try:
            engine = HeadlessEngine(session=browser, settings=self._headless_settings, sleep=self._sleep)
            live = LiveQuoteStrategy(
                engine=engine,
                registry=self._registry,
                commission_rate=Decimal(self._quote_settings.commission_rate),
                currency=self._quote_settings.currency,
            )
            if self._quote_settings.simulation_fallback:
                yield FallbackQuoteStrategy(live, simulated)
            else:
                yield live
        finally:
            browser.close()

    def _scrape_target(
        self,
        session: Session,
        quotes: QuoteRepository,
        quote: Quote,
        target: ScraperTarget,
        strategy: QuoteStrategy,
        profile: CustomerProfile,
    ) -> int:
        try:
            offer = strategy.fetch(target, profile)
            values = self._offer_values(quote, target, offer)
        except (ScrapeError, PlaywrightError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "quote_target_failed",
                quote_id=quote.id,
                company=target.name,
                **error_fields(exc),
            )
            values = self._error_values(quote, target, exc)

        try:
            with session.begin_nested():
                quotes.add_scraped_quote(**values)
        except IntegrityError:
            log_event(
                logger,
                logging.INFO,
                "quote_offer_already_stored",
                quote_id=quote.id,
                company=target.name,
            )
            return 0
        session.commit()
        return 1

    @staticmethod
    def _offer_values(quote: Quote, target: ScraperTarget, offer: QuoteOffer) -> dict[str, Any]:
        return {
            "quote_id": quote.id,
            "target_id": target.id,
            "company_name": offer.company_name,
            "company_logo": target.logo_url,
            "premium": offer.premium,
            "coverage_amount": offer.coverage_amount,
            "discount": offer.discount,
            "final_price": offer.final_price,
            "agent_commission": offer.agent_commission,
            "status": ScrapedQuoteStatus.SCRAPED,
            "source": offer.source,
            "error_message": offer.failure_reason,
            "raw_payload": offer.to_payload(),
            "scraped_at": offer.scraped_at,
        }

    @staticmethod
    def _error_values(quote: Quote, target: ScraperTarget, exc: Exception) -> dict[str, Any]:
        return {
            "quote_id": quote.id,
            "target_id": target.id,
            "company_name": target.name,
            "company_logo": target.logo_url,
            "status": ScrapedQuoteStatus.ERROR,
            "source": OfferSource.LIVE,
            "error_message": f"{type(exc).__name__}: {exc}",
        }
