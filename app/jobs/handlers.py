"""
Handlers for the operator scrape pipeline: scrape:target, scrape:all,
scrape:enrich, scrape:dedupe and cleanup:old_data.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.config import HeadlessSettings, ScraperSettings
from app.jobs.errors import NonRetryableJobError
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import (
    CLEANUP_OLD_DATA,
    QUEUE_DEFAULT,
    QUEUE_LOW,
    SCRAPE_ALL,
    SCRAPE_DEDUPE,
    SCRAPE_ENRICH,
    SCRAPE_TARGET,
    CleanupPayload,
    DedupePayload,
    EnrichPayload,
    ScrapeAllPayload,
    ScrapeTargetPayload,
    decode_payload,
)
from app.scraping.engine import TargetScrapeRunner
from app.scraping.logging_utils import log_event
from app.scraping.normalization import enrich_record
from db.models.scraper_run import ScraperRun, ScraperRunStatus
from db.repositories.scraper_repository import (
    ScrapedRowRepository,
    ScraperRunRepository,
    ScraperTargetRepository,
)
from db.session import SessionFactory, session_scope

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[Session], TargetScrapeRunner]


class ScrapePipelineHandlers:
    """
    Each handler opens its own session so worker threads never share one.
    """

    def __init__(
        self,
        *,
        orchestrator: TaskOrchestrator,
        session_factory: SessionFactory,
        scraper_settings: ScraperSettings,
        headless_settings: HeadlessSettings,
        runner_factory: RunnerFactory | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._orchestrator = orchestrator
        self._session_factory = session_factory
        self._scraper_settings = scraper_settings
        self._headless_settings = headless_settings
        self._runner_factory = runner_factory or self._default_runner
        self._now = now

    def register(self) -> None:
        self._orchestrator.register(SCRAPE_TARGET, self.scrape_target)
        self._orchestrator.register(SCRAPE_ALL, self.scrape_all)
        self._orchestrator.register(SCRAPE_ENRICH, self.enrich)
        self._orchestrator.register(SCRAPE_DEDUPE, self.dedupe)
        self._orchestrator.register(CLEANUP_OLD_DATA, self.cleanup_old_data)

    def _default_runner(self, session: Session) -> TargetScrapeRunner:
        return TargetScrapeRunner(
            session=session,
            scraper_settings=self._scraper_settings,
            headless_settings=self._headless_settings,
        )

    def scrape_target(self, data: dict[str, Any]) -> None:
        payload = decode_payload(ScrapeTargetPayload, data)
        with session_scope(self._session_factory) as session:
            target = ScraperTargetRepository(session).get(payload.target_id)
            if target is None:
                raise NonRetryableJobError(f"Scraper target not found: {payload.target_id}")
            if not target.enabled:
                raise NonRetryableJobError(f"Scraper target is disabled: {target.name}")
            self._runner_factory(session).run(target)

        follow_up = {"target_id": str(payload.target_id)}
        self._orchestrator.enqueue(SCRAPE_ENRICH, follow_up, QUEUE_LOW)
        self._orchestrator.enqueue(SCRAPE_DEDUPE, follow_up, QUEUE_LOW)

    def _running_window(self) -> timedelta:
        # Longest a live run can take: every page retried to the limit, plus one navigation.
        settings = self._scraper_settings
        attempts = (settings.max_retries + 1) * max(settings.max_pages, 1)
        seconds = settings.timeout_seconds * attempts + self._headless_settings.navigation_timeout_ms / 1000
        return timedelta(seconds=seconds)

    def _is_in_flight(self, run: ScraperRun | None, cutoff: datetime) -> bool:
        if run is None or run.status != ScraperRunStatus.RUNNING or run.started_at is None:
            return False
        started = run.started_at
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        return started >= cutoff

    def scrape_all(self, data: dict[str, Any]) -> None:
        payload = decode_payload(ScrapeAllPayload, data)
        cutoff = self._now() - self._running_window()
        with session_scope(self._session_factory) as session:
            targets = ScraperTargetRepository(session).list_enabled()
            runs = ScraperRunRepository(session)
            selected = []
            skipped = 0
            for target in targets:
                # A running run older than the window was abandoned by a dead worker.
                if not payload.force and self._is_in_flight(runs.latest_for_target(target.id), cutoff):
                    skipped += 1
                    continue
                selected.append(target.id)

        for target_id in selected:
            self._orchestrator.enqueue(SCRAPE_TARGET, {"target_id": str(target_id)}, QUEUE_DEFAULT)
        log_event(
            logger,
            logging.INFO,
            "scrape_all_enqueued",
            force=payload.force,
            enqueued=len(selected),
            skipped_running=skipped,
        )

    def enrich(self, data: dict[str, Any]) -> None:
        payload = decode_payload(EnrichPayload, data)
        enriched = 0
        skipped = 0
        with session_scope(self._session_factory) as session:
            rows = ScrapedRowRepository(session)
            for row in rows.list_for_target(payload.target_id):
                if not isinstance(row.normalized_json, dict):
                    skipped += 1
                    continue
                rows.update_normalized(row, enrich_record(row.normalized_json))
                enriched += 1
            session.commit()
        log_event(
            logger,
            logging.INFO,
            "scrape_enrich_completed",
            target_id=payload.target_id,
            enriched=enriched,
            skipped=skipped,
        )

    def dedupe(self, data: dict[str, Any]) -> None:
        payload = decode_payload(DedupePayload, data)
        removed = 0
        with session_scope(self._session_factory) as session:
            rows = ScrapedRowRepository(session)
            for hash_key in rows.find_duplicate_hashes(payload.target_id):
                duplicates = rows.list_by_hash(payload.target_id, hash_key)
                # Oldest row (then lowest id) is kept.
                removed += rows.delete_rows(duplicates[1:])
            session.commit()
        log_event(
            logger,
            logging.INFO,
            "scrape_dedupe_completed",
            target_id=payload.target_id,
            removed=removed,
        )

    def cleanup_old_data(self, data: dict[str, Any]) -> None:
        payload = decode_payload(CleanupPayload, data)
        cutoff = self._now() - timedelta(days=payload.days_old)
        with session_scope(self._session_factory) as session:
            rows_removed = ScrapedRowRepository(session).delete_older_than(cutoff)
            runs_removed = ScraperRunRepository(session).delete_older_than(cutoff)
            session.commit()
        log_event(
            logger,
            logging.INFO,
            "cleanup_completed",
            days_old=payload.days_old,
            cutoff=cutoff.isoformat(),
            scraped_rows_removed=rows_removed,
            scraper_runs_removed=runs_removed,
        )
