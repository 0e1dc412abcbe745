"""
tests/test_scheduler.py

Recurring sweep registration. The scheduler is built but never started.
"""

from __future__ import annotations

import json
import random
from datetime import timedelta

import pytest

from app.config import OrchestratorSettings, RetentionSettings
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import CLEANUP_OLD_DATA, QUEUE_DEFAULT, QUEUE_LOW, SCRAPE_ALL
from app.scheduler.jobs import build_scheduler, enqueue_cleanup, enqueue_scrape_all


@pytest.fixture()
def orchestrator() -> TaskOrchestrator:
    return TaskOrchestrator(OrchestratorSettings(), rng=random.Random(0))


class TestBuildScheduler:
    def test_jobs_and_intervals(self, orchestrator) -> None:
        scheduler = build_scheduler(
            orchestrator,
            settings=OrchestratorSettings(scrape_all_interval_hours=12, cleanup_interval_days=3),
            retention=RetentionSettings(cleanup_days_old=45),
        )

        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"scrape_all", "cleanup_old_data"}
        assert jobs["scrape_all"].trigger.interval == timedelta(hours=12)
        assert jobs["cleanup_old_data"].trigger.interval == timedelta(days=3)
        assert tuple(jobs["cleanup_old_data"].args) == (orchestrator, 45)
        assert scheduler.running is False

    def test_default_schedule(self, orchestrator) -> None:
        scheduler = build_scheduler(orchestrator, settings=OrchestratorSettings(), retention=RetentionSettings())

        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert jobs["scrape_all"].trigger.interval == timedelta(hours=24)
        assert jobs["cleanup_old_data"].trigger.interval == timedelta(days=7)
        assert jobs["cleanup_old_data"].args[1] == 30


class TestEnqueueFunctions:
    def test_scrape_all_goes_to_default_queue(self, orchestrator) -> None:
        enqueue_scrape_all(orchestrator)

        (job,) = orchestrator.pending_jobs()
        assert job.job_type == SCRAPE_ALL
        assert job.queue == QUEUE_DEFAULT
        assert json.loads(job.payload) == {"force": False}

    def test_cleanup_goes_to_low_queue(self, orchestrator) -> None:
        enqueue_cleanup(orchestrator, 30)

        (job,) = orchestrator.pending_jobs()
        assert job.job_type == CLEANUP_OLD_DATA
        assert job.queue == QUEUE_LOW
        assert json.loads(job.payload) == {"days_old": 30}
