"""
app/services/scraping_control_service.py

Operator controls for the scrape pipeline: trigger sweeps, inspect targets,
runs and the job queues.
"""

from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import QUEUE_DEFAULT, SCRAPE_ALL, SCRAPE_TARGET, Job
from db.models.scraper_run import ScraperRun
from db.models.scraper_target import ScraperTarget
from db.repositories.errors import RepositoryError
from db.repositories.scraper_repository import ScraperRunRepository, ScraperTargetRepository


class TargetDisabledError(RepositoryError):
    """Raised when a manual run is requested for a disabled target."""


class ScrapingControlService:
    def __init__(self, orchestrator: TaskOrchestrator | None = None) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> TaskOrchestrator:
        if self._orchestrator is None:
            from app.jobs.worker import get_task_orchestrator

            self._orchestrator = get_task_orchestrator()
        return self._orchestrator

    def run_all(self, *, force: bool = False) -> Job:
        return self.orchestrator.enqueue(SCRAPE_ALL, {"force": force}, QUEUE_DEFAULT)

    def run_target(self, *, db: Session, target_id: uuid.UUID) -> Job:
        target = ScraperTargetRepository(db).get_required(target_id)
        if not target.enabled:
            raise TargetDisabledError(f"Scraper target is disabled: {target.name}")
        return self.orchestrator.enqueue(SCRAPE_TARGET, {"target_id": str(target.id)}, QUEUE_DEFAULT)

    def list_targets(self, *, db: Session, enabled_only: bool = False) -> list[ScraperTarget]:
        return ScraperTargetRepository(db).list_targets(enabled_only=enabled_only)

    def list_runs(
        self,
        *,
        db: Session,
        limit: int = 50,
        target_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ScraperRun]:
        return ScraperRunRepository(db).list_runs(limit=limit, target_id=target_id, status=status)

    def queue_stats(self) -> dict[str, Any]:
        return self.orchestrator.stats()


@lru_cache(maxsize=1)
def get_scraping_control_service() -> ScrapingControlService:
    """
    Build and cache the scraping control service.
    """

    return ScrapingControlService()
