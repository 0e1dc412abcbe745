"""
app/scheduler/jobs.py

APScheduler-based recurring sweeps for the scrape pipeline.

Schedule
--------
  scrape_all       every SCHEDULE_SCRAPE_ALL_HOURS (24h default), enqueues
                     scrape:all with force=false on the default queue
  cleanup_old_data every SCHEDULE_CLEANUP_DAYS (7 days default), enqueues
                     cleanup:old_data on the low queue

The scheduler only enqueues; the task orchestrator executes the jobs.
Call ``build_scheduler()`` once, start it on app boot and shut it down on
app shutdown. It is wired into FastAPI via the ``lifespan`` context in
main.py and into ``scripts/run_worker.py``.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import (
    OrchestratorSettings,
    RetentionSettings,
    get_orchestrator_settings,
    get_retention_settings,
)
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import CLEANUP_OLD_DATA, QUEUE_DEFAULT, QUEUE_LOW, SCRAPE_ALL

logger = logging.getLogger(__name__)


def enqueue_scrape_all(orchestrator: TaskOrchestrator) -> None:
    job = orchestrator.enqueue(SCRAPE_ALL, {"force": False}, QUEUE_DEFAULT)
    logger.info("Scheduler: scrape_all enqueued job_id=%s", job.id)


def enqueue_cleanup(orchestrator: TaskOrchestrator, days_old: int) -> None:
    job = orchestrator.enqueue(CLEANUP_OLD_DATA, {"days_old": days_old}, QUEUE_LOW)
    logger.info("Scheduler: cleanup_old_data enqueued job_id=%s days_old=%s", job.id, days_old)


def build_scheduler(
    orchestrator: TaskOrchestrator,
    settings: OrchestratorSettings | None = None,
    retention: RetentionSettings | None = None,
) -> BackgroundScheduler:
    """
    Build and register the periodic sweeps.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """
    settings = settings or get_orchestrator_settings()
    retention = retention or get_retention_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        enqueue_scrape_all,
        trigger="interval",
        hours=settings.scrape_all_interval_hours,
        args=[orchestrator],
        id="scrape_all",
        name="Scrape all enabled targets",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        enqueue_cleanup,
        trigger="interval",
        days=settings.cleanup_interval_days,
        args=[orchestrator, retention.cleanup_days_old],
        id="cleanup_old_data",
        name="Clean up old scrape data",
        replace_existing=True,
        misfire_grace_time=7200,
    )

    logger.info(
        "Scheduler: registered scrape_all every %sh and cleanup_old_data every %sd",
        settings.scrape_all_interval_hours,
        settings.cleanup_interval_days,
    )
    return scheduler
