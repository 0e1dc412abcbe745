"""
tests/test_quote_workflow.py

Quote lifecycle, the quote:scrape handler and approval into a policy.
"""

from __future__ import annotations

import random
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from app.config import HeadlessSettings, OrchestratorSettings, QuoteScrapingSettings
from app.domain.quote_lifecycle import can_transition, ensure_transition
from app.jobs.errors import NonRetryableJobError
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.quote_scrape import QuoteScrapeHandler
from app.jobs.types import QUEUE_CRITICAL, QUOTE_SCRAPE
from app.scraping.errors import BrowserUnavailableError
from app.scraping.headless.scripts import QUOTE_EXTRACTION_SCRIPT
from app.scraping.insurance import FieldMapRegistry
from app.services.quote_workflow_service import OfferNotApprovableError, QuoteWorkflowService
from conftest import FakeBrowserSession, FakePage, make_customer, make_quote, make_target
from db.models.policy import PolicyStatus
from db.models.quote import OfferSource, Quote, QuoteStatus, ScrapedQuoteStatus
from db.repositories.errors import QuoteTransitionError, RecordNotFoundError
from db.repositories.quote_repository import QuoteRepository

COMPANIES = ("Allianz", "Mapfre", "Aksigorta", "Axa Sigorta", "Anadolu Sigorta")


@pytest.fixture()
def orchestrator() -> TaskOrchestrator:
    return TaskOrchestrator(OrchestratorSettings(), rng=random.Random(3))


@pytest.fixture()
def registry() -> FieldMapRegistry:
    return FieldMapRegistry.load()


@pytest.fixture()
def targets(db_session):
    created = [make_target(db_session, name) for name in COMPANIES]
    make_target(db_session, "Eski Sigorta", is_active=False)
    db_session.commit()
    return created


@pytest.fixture()
def customer(db_session):
    customer = make_customer(db_session)
    db_session.commit()
    return customer


def _handler(session_factory, registry, sleeper, *, headless=False, fallback=True, browser_factory=None):
    kwargs = {}
    if browser_factory is not None:
        kwargs["browser_factory"] = browser_factory
    return QuoteScrapeHandler(
        session_factory=session_factory,
        headless_settings=HeadlessSettings(enabled=headless, typing_delay_min_ms=0, typing_delay_max_ms=0),
        quote_settings=QuoteScrapingSettings(simulation_fallback=fallback, inter_target_delay_ms=0),
        registry=registry,
        sleep=sleeper,
        **kwargs,
    )


def _offers(session_factory, quote_id):
    with session_factory() as session:
        return QuoteRepository(session).list_scraped_quotes(quote_id)


def _status(session_factory, quote_id) -> str:
    with session_factory() as session:
        return session.get(Quote, quote_id).status


class TestQuoteLifecycle:
    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (QuoteStatus.PENDING, QuoteStatus.PROCESSING),
            (QuoteStatus.PROCESSING, QuoteStatus.PROCESSING),
            (QuoteStatus.PROCESSING, QuoteStatus.COMPLETED),
            (QuoteStatus.COMPLETED, QuoteStatus.APPROVED),
        ],
    )
    def test_forward_moves_are_allowed(self, current, requested) -> None:
        assert ensure_transition(current, requested) == requested

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (QuoteStatus.PENDING, QuoteStatus.COMPLETED),
            (QuoteStatus.PENDING, QuoteStatus.APPROVED),
            (QuoteStatus.COMPLETED, QuoteStatus.PROCESSING),
            (QuoteStatus.APPROVED, QuoteStatus.COMPLETED),
            (QuoteStatus.APPROVED, QuoteStatus.APPROVED),
        ],
    )
    def test_other_moves_are_rejected(self, current, requested) -> None:
        assert can_transition(current, requested) is False
        with pytest.raises(QuoteTransitionError):
            ensure_transition(current, requested)


class TestCreateQuote:
    def test_quote_is_stored_pending_and_enqueued_critical(self, db_session, customer, orchestrator) -> None:
        service = QuoteWorkflowService(orchestrator)

        quote = service.create_quote(
            db=db_session,
            customer_id=customer.id,
            product_id=uuid.uuid4(),
            agent_id=uuid.uuid4(),
            coverage_type="kasko",
            start_date=date(2026, 11, 1),
            end_date=date(2027, 11, 1),
            vehicle={"plate": "34 ABC 123", "year": 2021, "brand": "Renault", "model": "Clio"},
        )

        assert quote.status == QuoteStatus.PENDING
        assert quote.vehicle_brand == "Renault"
        (job,) = orchestrator.pending_jobs(QUEUE_CRITICAL)
        assert job.job_type == QUOTE_SCRAPE
        assert str(quote.id) in job.payload

    def test_unknown_customer(self, db_session, orchestrator) -> None:
        service = QuoteWorkflowService(orchestrator)

        with pytest.raises(RecordNotFoundError):
            service.create_quote(
                db=db_session,
                customer_id=uuid.uuid4(),
                product_id=uuid.uuid4(),
                agent_id=uuid.uuid4(),
                coverage_type="kasko",
                start_date=date(2026, 11, 1),
                end_date=date(2027, 11, 1),
            )

        assert orchestrator.pending_jobs() == []


class TestQuoteScrapeHandler:
    def test_one_offer_per_active_target_cheapest_first(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        _handler(session_factory, registry, sleeper).register(orchestrator)
        quote = QuoteWorkflowService(orchestrator).create_quote(
            db=db_session,
            customer_id=customer.id,
            product_id=uuid.uuid4(),
            agent_id=uuid.uuid4(),
            coverage_type="kasko",
            start_date=date(2026, 11, 1),
            end_date=date(2027, 11, 1),
        )

        orchestrator.run_until_idle()

        offers = _offers(session_factory, quote.id)
        assert [offer.company_name for offer in offers] == [
            "Allianz",
            "Aksigorta",
            "Anadolu Sigorta",
            "Axa Sigorta",
            "Mapfre",
        ]
        prices = [offer.final_price for offer in offers]
        assert prices == sorted(prices)
        assert prices[0] == Decimal("1282.50")
        assert all(offer.source == OfferSource.SIMULATED for offer in offers)
        assert all(offer.status == ScrapedQuoteStatus.SCRAPED for offer in offers)
        assert offers[0].company_logo == "https://cdn.example.com/allianz.png"
        assert offers[0].raw_payload["final_price"] == "1282.50"
        assert _status(session_factory, quote.id) == QuoteStatus.COMPLETED
        assert orchestrator.stats()["processed"] == 1

    def test_completed_quote_is_skipped(self, db_session, session_factory, targets, customer, registry, sleeper) -> None:
        quote = make_quote(db_session, customer, status=QuoteStatus.COMPLETED)
        db_session.commit()

        _handler(session_factory, registry, sleeper).handle({"quote_id": str(quote.id)})

        assert _offers(session_factory, quote.id) == []
        assert _status(session_factory, quote.id) == QuoteStatus.COMPLETED

    def test_retry_only_fills_missing_targets(
        self, db_session, session_factory, targets, customer, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer, status=QuoteStatus.PROCESSING)
        allianz = targets[0]
        QuoteRepository(db_session).add_scraped_quote(
            quote_id=quote.id,
            target_id=allianz.id,
            company_name=allianz.name,
            premium=Decimal("999.00"),
            discount=Decimal("0"),
            final_price=Decimal("999.00"),
            agent_commission=Decimal("119.88"),
        )
        db_session.commit()

        _handler(session_factory, registry, sleeper).handle({"quote_id": str(quote.id)})

        offers = _offers(session_factory, quote.id)
        assert len(offers) == len(COMPANIES)
        assert offers[0].company_name == "Allianz"
        assert offers[0].final_price == Decimal("999.00")
        assert _status(session_factory, quote.id) == QuoteStatus.COMPLETED

    def test_inter_target_delay(self, db_session, session_factory, targets, customer, registry, sleeper) -> None:
        quote = make_quote(db_session, customer)
        db_session.commit()
        handler = QuoteScrapeHandler(
            session_factory=session_factory,
            headless_settings=HeadlessSettings(enabled=False),
            quote_settings=QuoteScrapingSettings(inter_target_delay_ms=1000),
            registry=registry,
            sleep=sleeper,
        )

        handler.handle({"quote_id": str(quote.id)})

        assert sleeper.calls == [1.0] * (len(COMPANIES) - 1)

    def test_missing_quote_is_not_retried(self, session_factory, registry, sleeper) -> None:
        with pytest.raises(NonRetryableJobError):
            _handler(session_factory, registry, sleeper).handle({"quote_id": str(uuid.uuid4())})

    def test_live_offers(self, db_session, session_factory, targets, customer, registry, sleeper) -> None:
        quote = make_quote(db_session, customer)
        db_session.commit()
        page = FakePage(evaluate_results={QUOTE_EXTRACTION_SCRIPT: {"premium": "2.000,00 TL", "discount": 200}})
        session = FakeBrowserSession([page])
        handler = _handler(session_factory, registry, sleeper, headless=True, browser_factory=lambda: session)

        handler.handle({"quote_id": str(quote.id)})

        offers = _offers(session_factory, quote.id)
        assert len(offers) == len(COMPANIES)
        assert {offer.source for offer in offers} == {OfferSource.LIVE}
        assert {offer.final_price for offer in offers} == {Decimal("1800.00")}
        assert session.closed is True

    def test_live_failure_without_fallback_stores_error_rows(
        self, db_session, session_factory, targets, customer, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer)
        db_session.commit()
        page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded"))
        handler = _handler(
            session_factory,
            registry,
            sleeper,
            headless=True,
            fallback=False,
            browser_factory=lambda: FakeBrowserSession([page]),
        )

        handler.handle({"quote_id": str(quote.id)})

        offers = _offers(session_factory, quote.id)
        assert len(offers) == len(COMPANIES)
        for offer in offers:
            assert offer.status == ScrapedQuoteStatus.ERROR
            assert offer.source == OfferSource.LIVE
            assert offer.final_price is None
            assert offer.error_message.startswith("NavigationError: ")
        assert _status(session_factory, quote.id) == QuoteStatus.COMPLETED

    def test_live_failure_with_fallback_stores_simulated_offers(
        self, db_session, session_factory, targets, customer, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer)
        db_session.commit()
        page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded"))
        handler = _handler(
            session_factory,
            registry,
            sleeper,
            headless=True,
            browser_factory=lambda: FakeBrowserSession([page]),
        )

        handler.handle({"quote_id": str(quote.id)})

        offers = _offers(session_factory, quote.id)
        assert {offer.source for offer in offers} == {OfferSource.SIMULATED}
        assert {offer.status for offer in offers} == {ScrapedQuoteStatus.SCRAPED}
        assert all(offer.error_message.startswith("NavigationError") for offer in offers)

    def test_browser_unavailable_uses_simulation(
        self, db_session, session_factory, targets, customer, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer)
        db_session.commit()
        handler = _handler(
            session_factory,
            registry,
            sleeper,
            headless=True,
            browser_factory=lambda: FakeBrowserSession(launch_error=BrowserUnavailableError("no chromium")),
        )

        handler.handle({"quote_id": str(quote.id)})

        offers = _offers(session_factory, quote.id)
        assert len(offers) == len(COMPANIES)
        assert all(offer.source == OfferSource.SIMULATED and offer.error_message is None for offer in offers)

    def test_errors_inside_simulated_scope_are_not_chained_to_launch_failure(
        self, session_factory, registry, sleeper
    ) -> None:
        handler = _handler(
            session_factory,
            registry,
            sleeper,
            headless=True,
            browser_factory=lambda: FakeBrowserSession(launch_error=BrowserUnavailableError("no chromium")),
        )

        with pytest.raises(ValueError) as excinfo:
            with handler.strategy_scope() as strategy:
                assert strategy.name == "simulated"
                raise ValueError("bad profile")

        assert excinfo.value.__context__ is None


class TestApprove:
    def _completed_quote(self, db_session, session_factory, customer, registry, sleeper) -> Quote:
        quote = make_quote(db_session, customer)
        db_session.commit()
        _handler(session_factory, registry, sleeper).handle({"quote_id": str(quote.id)})
        return quote

    def test_approval_issues_policy(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        quote = self._completed_quote(db_session, session_factory, customer, registry, sleeper)
        cheapest = _offers(session_factory, quote.id)[0]
        service = QuoteWorkflowService(orchestrator)

        with session_factory() as session:
            policy = service.approve(db=session, quote_id=quote.id, scraped_quote_id=cheapest.id)

            year = datetime.now(timezone.utc).year
            assert policy.policy_number == f"POL-{year}-000001"
            assert policy.premium == Decimal("1282.50")
            assert policy.company_name == "Allianz"
            assert policy.status == PolicyStatus.ACTIVE
            assert policy.start_date == quote.start_date
            assert policy.scraped_quote_id == cheapest.id

        assert _status(session_factory, quote.id) == QuoteStatus.APPROVED

    def test_policy_numbers_increase(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        service = QuoteWorkflowService(orchestrator)
        numbers = []
        for _ in range(2):
            quote = self._completed_quote(db_session, session_factory, customer, registry, sleeper)
            offer = _offers(session_factory, quote.id)[0]
            with session_factory() as session:
                numbers.append(service.approve(db=session, quote_id=quote.id, scraped_quote_id=offer.id).policy_number)

        assert [number[-6:] for number in numbers] == ["000001", "000002"]

    def test_error_offer_cannot_be_approved(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer, status=QuoteStatus.COMPLETED)
        error_row = QuoteRepository(db_session).add_scraped_quote(
            quote_id=quote.id,
            target_id=targets[0].id,
            company_name=targets[0].name,
            status=ScrapedQuoteStatus.ERROR,
            error_message="NavigationError: timed out",
        )
        db_session.commit()

        with pytest.raises(OfferNotApprovableError):
            QuoteWorkflowService(orchestrator).approve(db=db_session, quote_id=quote.id, scraped_quote_id=error_row.id)

    def test_quote_must_be_completed(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        quote = make_quote(db_session, customer, status=QuoteStatus.PROCESSING)
        offer = QuoteRepository(db_session).add_scraped_quote(
            quote_id=quote.id,
            target_id=targets[0].id,
            company_name=targets[0].name,
            premium=Decimal("1000.00"),
            final_price=Decimal("1000.00"),
        )
        db_session.commit()

        with pytest.raises(QuoteTransitionError):
            QuoteWorkflowService(orchestrator).approve(db=db_session, quote_id=quote.id, scraped_quote_id=offer.id)

    def test_offer_from_another_quote(
        self, db_session, session_factory, targets, customer, orchestrator, registry, sleeper
    ) -> None:
        first = self._completed_quote(db_session, session_factory, customer, registry, sleeper)
        second = self._completed_quote(db_session, session_factory, customer, registry, sleeper)
        foreign = _offers(session_factory, first.id)[0]

        with session_factory() as session, pytest.raises(RecordNotFoundError):
            QuoteWorkflowService(orchestrator).approve(db=session, quote_id=second.id, scraped_quote_id=foreign.id)
