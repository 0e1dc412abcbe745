"""
tests/test_api.py

HTTP surface through FastAPI's TestClient with the database, services and
orchestrator overridden. The lifespan (DB checks, worker start) is skipped.
"""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_orchestrator
from app.config import HeadlessSettings, OrchestratorSettings, QuoteScrapingSettings
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.quote_scrape import QuoteScrapeHandler
from app.jobs.types import QUEUE_CRITICAL, QUEUE_DEFAULT, SCRAPE_ALL, SCRAPE_TARGET
from app.main import create_app
from app.scraping.insurance import FieldMapRegistry
from app.services.quote_workflow_service import QuoteWorkflowService, get_quote_workflow_service
from app.services.scraping_control_service import ScrapingControlService, get_scraping_control_service
from conftest import make_customer, make_quote, make_target
from db.models.quote import QuoteStatus
from db.repositories.scraper_repository import ScraperRunRepository
from db.session import get_db


@pytest.fixture()
def orchestrator() -> TaskOrchestrator:
    return TaskOrchestrator(OrchestratorSettings(), rng=random.Random(5))


@pytest.fixture()
def client(session_factory, orchestrator):
    application = create_app(lifespan=None)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_quote_workflow_service] = lambda: QuoteWorkflowService(orchestrator)
    application.dependency_overrides[get_scraping_control_service] = lambda: ScrapingControlService(orchestrator)
    application.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(application) as test_client:
        yield test_client


def _quote_body(customer_id: uuid.UUID, **overrides) -> dict:
    body = {
        "customer_id": str(customer_id),
        "product_id": str(uuid.uuid4()),
        "agent_id": str(uuid.uuid4()),
        "coverage_type": "kasko",
        "start_date": "2026-11-01",
        "end_date": "2027-11-01",
        "vehicle": {"plate": "34 ABC 123", "year": 2021, "brand": "Renault", "model": "Clio"},
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "workers": 0}


class TestQuoteEndpoints:
    def test_create_quote(self, client, db_session, orchestrator) -> None:
        customer = make_customer(db_session)
        db_session.commit()

        response = client.post("/quotes", json=_quote_body(customer.id))

        assert response.status_code == 201
        payload = response.json()
        assert payload["status"] == QuoteStatus.PENDING
        assert payload["vehicle_brand"] == "Renault"
        assert len(orchestrator.pending_jobs(QUEUE_CRITICAL)) == 1

    def test_create_quote_unknown_customer(self, client, orchestrator) -> None:
        response = client.post("/quotes", json=_quote_body(uuid.uuid4()))

        assert response.status_code == 404
        assert orchestrator.pending_jobs() == []

    def test_create_quote_rejects_inverted_period(self, client, db_session) -> None:
        customer = make_customer(db_session)
        db_session.commit()

        response = client.post(
            "/quotes",
            json=_quote_body(customer.id, start_date="2027-11-01", end_date="2026-11-01"),
        )

        assert response.status_code == 422

    def test_get_missing_quote(self, client) -> None:
        assert client.get(f"/quotes/{uuid.uuid4()}").status_code == 404
        assert client.get(f"/quotes/{uuid.uuid4()}/scraped").status_code == 404

    def test_offers_and_approval(self, client, db_session, session_factory, sleeper) -> None:
        for name in ("Allianz", "Mapfre"):
            make_target(db_session, name)
        customer = make_customer(db_session)
        quote = make_quote(db_session, customer)
        db_session.commit()
        QuoteScrapeHandler(
            session_factory=session_factory,
            headless_settings=HeadlessSettings(enabled=False),
            quote_settings=QuoteScrapingSettings(inter_target_delay_ms=0),
            registry=FieldMapRegistry.load(),
            sleep=sleeper,
        ).handle({"quote_id": str(quote.id)})

        offers = client.get(f"/quotes/{quote.id}/scraped").json()
        assert [offer["company_name"] for offer in offers] == ["Allianz", "Mapfre"]
        assert offers[0]["final_price"] == "1282.50"

        response = client.post(f"/quotes/{quote.id}/approve/{offers[0]['id']}")
        assert response.status_code == 200
        policy = response.json()
        assert policy["policy_number"] == f"POL-{datetime.now(timezone.utc).year}-000001"
        assert policy["status"] == "active"
        assert client.get(f"/quotes/{quote.id}").json()["status"] == QuoteStatus.APPROVED

        # A second approval is an illegal status transition.
        again = client.post(f"/quotes/{quote.id}/approve/{offers[1]['id']}")
        assert again.status_code == 409

    def test_approve_unknown_offer(self, client, db_session) -> None:
        customer = make_customer(db_session)
        quote = make_quote(db_session, customer, status=QuoteStatus.COMPLETED)
        db_session.commit()

        response = client.post(f"/quotes/{quote.id}/approve/{uuid.uuid4()}")

        assert response.status_code == 404


class TestScraperEndpoints:
    def test_list_targets(self, client, db_session) -> None:
        make_target(db_session, "Allianz")
        make_target(db_session, "Mapfre", enabled=False)
        db_session.commit()

        everything = client.get("/scraper/targets").json()
        enabled = client.get("/scraper/targets", params={"enabled_only": True}).json()

        assert {target["name"] for target in everything} == {"Allianz", "Mapfre"}
        assert [target["name"] for target in enabled] == ["Allianz"]

    def test_list_runs(self, client, db_session) -> None:
        target = make_target(db_session, "Allianz")
        ScraperRunRepository(db_session).create_run(target_id=target.id)
        db_session.commit()

        runs = client.get("/scraper/runs", params={"target_id": str(target.id)}).json()

        assert len(runs) == 1
        assert runs[0]["target_id"] == str(target.id)
        assert client.get("/scraper/runs", params={"limit": 0}).status_code == 422

    def test_run_all(self, client, orchestrator) -> None:
        response = client.post("/scraper/run", json={"force": True})

        assert response.status_code == 202
        assert response.json()["job_type"] == SCRAPE_ALL
        (job,) = orchestrator.pending_jobs(QUEUE_DEFAULT)
        assert '"force": true' in job.payload

    def test_run_all_without_body(self, client, orchestrator) -> None:
        assert client.post("/scraper/run").status_code == 202
        assert '"force": false' in orchestrator.pending_jobs(QUEUE_DEFAULT)[0].payload

    def test_run_target(self, client, db_session, orchestrator) -> None:
        enabled = make_target(db_session, "Allianz")
        disabled = make_target(db_session, "Mapfre", enabled=False)
        db_session.commit()

        accepted = client.post(f"/scraper/targets/{enabled.id}/run")
        refused = client.post(f"/scraper/targets/{disabled.id}/run")
        missing = client.post(f"/scraper/targets/{uuid.uuid4()}/run")

        assert accepted.status_code == 202
        assert accepted.json()["job_type"] == SCRAPE_TARGET
        assert refused.status_code == 409
        assert missing.status_code == 404
        assert len(orchestrator.pending_jobs()) == 1

    def test_queue_stats(self, client, orchestrator) -> None:
        orchestrator.enqueue(SCRAPE_ALL, {"force": False})

        stats = client.get("/scraper/queue").json()

        assert stats["queues"] == {"critical": 0, "default": 1, "low": 0}
        assert stats["weights"] == {"critical": 6, "default": 3, "low": 1}
        assert stats["enqueued"] == 1


class TestRunApiScript:
    def test_serves_the_app_module_with_uvicorn(self, monkeypatch) -> None:
        import uvicorn

        from scripts import run_api

        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
        monkeypatch.setenv("API_HOST", "127.0.0.1")

        assert run_api.main(["--port", "9001"]) == 0

        ((app_path, kwargs),) = calls
        assert app_path == "app.main:app"
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9001
        assert kwargs["reload"] is False
