"""
Target scrape runner: one ScraperRun per scrape:target job.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests
from sqlalchemy.orm import Session

from app.config import HeadlessSettings, ScraperSettings
from app.domain.target_scraping import TargetScrapeSummary
from app.scraping.errors import ScrapeError
from app.scraping.headless import BrowserSession, HeadlessEngine
from app.scraping.logging_utils import error_fields, log_event
from app.scraping.static_collector import StaticCollector
from app.scraping.storage import SQLAlchemyScrapedRowStorage
from app.scraping.types import ScrapeStats
from db.models.scraper_run import ScraperRunStatus
from db.models.scraper_target import ScraperTarget
from db.repositories.scraper_repository import ScraperRunRepository

logger = logging.getLogger(__name__)

ENGINE_STATIC = "static"
ENGINE_HEADLESS = "headless"


class TargetScrapeRunner:
    """
    Records a run, dispatches the target to the static collector or the
    headless engine and stores the outcome on the run.

    Targets flagged use_headless fall back to the static collector while
    HEADLESS_ENABLED is off.
    """

    def __init__(
        self,
        *,
        session: Session,
        scraper_settings: ScraperSettings,
        headless_settings: HeadlessSettings,
        http_session: requests.Session | None = None,
        browser_factory: Callable[[], BrowserSession] = BrowserSession,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session
        self._scraper_settings = scraper_settings
        self._headless_settings = headless_settings
        self._http_session = http_session
        self._browser_factory = browser_factory
        self._sleep = sleep
        self._runs = ScraperRunRepository(session)
        self._storage = SQLAlchemyScrapedRowStorage(session=session)

    def engine_for(self, target: ScraperTarget) -> str:
        if target.use_headless and self._headless_settings.enabled:
            return ENGINE_HEADLESS
        return ENGINE_STATIC

    def run(self, target: ScraperTarget) -> TargetScrapeSummary:
        engine = self.engine_for(target)
        run = self._runs.create_run(target_id=target.id)
        self._runs.mark_running(run)
        self._session.commit()

        log_event(
            logger,
            logging.INFO,
            "target_scrape_started",
            target=target.name,
            target_id=target.id,
            run_id=run.id,
            engine=engine,
        )
        if target.use_headless and engine == ENGINE_STATIC:
            log_event(logger, logging.WARNING, "headless_disabled_static_fallback", target=target.name)

        try:
            if engine == ENGINE_HEADLESS:
                stats = self._scrape_headless(target)
            else:
                stats = self._scrape_static(target)
        except Exception as exc:
            self._session.rollback()
            failed_stats = exc.stats if isinstance(exc, ScrapeError) else None
            self._runs.mark_failed(
                run,
                error_message=str(exc),
                stats=failed_stats.to_dict() if isinstance(failed_stats, ScrapeStats) else None,
            )
            self._session.commit()
            log_event(
                logger,
                logging.ERROR,
                "target_scrape_failed",
                target=target.name,
                run_id=run.id,
                engine=engine,
                **error_fields(exc),
            )
            raise

        self._runs.mark_completed(run, stats=stats.to_dict())
        self._session.commit()
        log_event(
            logger,
            logging.INFO,
            "target_scrape_completed",
            target=target.name,
            run_id=run.id,
            engine=engine,
            total_pages=stats.total_pages,
            success_pages=stats.success_pages,
            error_pages=stats.error_pages,
            data_extracted=stats.data_extracted,
        )
        return TargetScrapeSummary(
            target_id=target.id,
            target_name=target.name,
            run_id=run.id,
            engine=engine,
            status=ScraperRunStatus.COMPLETED,
            stats=stats.to_dict(),
        )

    def _scrape_static(self, target: ScraperTarget) -> ScrapeStats:
        collector = StaticCollector(
            settings=self._scraper_settings,
            storage=self._storage,
            session=self._http_session,
            sleep=self._sleep,
        )
        return collector.collect(target)

    def _scrape_headless(self, target: ScraperTarget) -> ScrapeStats:
        with self._browser_factory() as browser:
            engine = HeadlessEngine(
                session=browser,
                settings=self._headless_settings,
                storage=self._storage,
                sleep=self._sleep,
            )
            return engine.scrape_target(target)
