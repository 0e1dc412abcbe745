"""
Process-wide orchestrator wiring: one orchestrator with every job handler
registered against the shared session factory.
"""

from __future__ import annotations

from functools import lru_cache

from app.config import (
    get_headless_settings,
    get_orchestrator_settings,
    get_quote_scraping_settings,
    get_scraper_settings,
)
from app.jobs.handlers import ScrapePipelineHandlers
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.quote_scrape import QuoteScrapeHandler
from db.session import SessionFactory, SessionLocal


def build_task_orchestrator(session_factory: SessionFactory = SessionLocal) -> TaskOrchestrator:
    orchestrator = TaskOrchestrator(settings=get_orchestrator_settings())
    ScrapePipelineHandlers(
        orchestrator=orchestrator,
        session_factory=session_factory,
        scraper_settings=get_scraper_settings(),
        headless_settings=get_headless_settings(),
    ).register()
    QuoteScrapeHandler(
        session_factory=session_factory,
        headless_settings=get_headless_settings(),
        quote_settings=get_quote_scraping_settings(),
    ).register(orchestrator)
    return orchestrator


@lru_cache(maxsize=1)
def get_task_orchestrator() -> TaskOrchestrator:
    """
    Build and cache the orchestrator shared by the API and the scheduler.
    """

    return build_task_orchestrator()
