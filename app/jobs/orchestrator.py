"""
In-process task orchestrator: weighted priority lanes, a fixed worker pool
and retry with exponential backoff.

Queue selection is weighted random among non-empty lanes, so with the
default 6:3:1 weights `low` keeps draining while `critical` is busy.
Delayed and retried jobs wait in a heap until they are due.
"""

from __future__ import annotations

import heapq
import itertools
import json
import logging
import random
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from app.config import OrchestratorSettings
from app.jobs.errors import NonRetryableJobError, PayloadDecodeError, UnknownJobTypeError
from app.jobs.types import QUEUE_DEFAULT, Job, encode_payload
from app.scraping.logging_utils import error_fields, log_event

logger = logging.getLogger(__name__)

JobHandler = Callable[[dict[str, Any]], Any]


class TaskOrchestrator:
    def __init__(
        self,
        settings: OrchestratorSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or OrchestratorSettings()
        self._weights = dict(self._settings.queue_weights)
        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep

        self._handlers: dict[str, JobHandler] = {}
        self._queues: dict[str, deque[Job]] = {name: deque() for name in self._weights}
        self._scheduled: list[tuple[float, int, Job]] = []
        self._sequence = itertools.count()
        self._dead_letters: list[Job] = []

        self._condition = threading.Condition()
        self._workers: list[threading.Thread] = []
        self._stopping = False
        self._in_flight = 0
        self._counters = {"enqueued": 0, "processed": 0, "failed": 0, "retried": 0, "dead_lettered": 0}

    # ------------------------------------------------------------------
    # Registration and enqueue
    # ------------------------------------------------------------------

    def register(self, job_type: str, handler: JobHandler) -> None:
        if job_type in self._handlers:
            raise ValueError(f"A handler is already registered for '{job_type}'.")
        self._handlers[job_type] = handler

    @property
    def job_types(self) -> list[str]:
        return sorted(self._handlers)

    @property
    def queue_names(self) -> list[str]:
        return list(self._weights)

    def enqueue(
        self,
        job_type: str,
        payload: BaseModel | dict[str, Any] | None = None,
        queue: str = QUEUE_DEFAULT,
        *,
        delay_seconds: float | None = None,
        max_retries: int | None = None,
    ) -> Job:
        if queue not in self._weights:
            raise ValueError(f"Unknown queue '{queue}'. Allowed: {', '.join(self._weights)}.")

        job = Job(
            job_type=job_type,
            payload=encode_payload(payload if payload is not None else {}),
            queue=queue,
            max_retries=self._settings.max_retries if max_retries is None else max(0, max_retries),
        )
        with self._condition:
            self._counters["enqueued"] += 1
            if delay_seconds and delay_seconds > 0:
                self._schedule(job, self._clock() + delay_seconds)
            else:
                job.available_at = self._clock()
                self._queues[queue].append(job)
            self._condition.notify()

        log_event(
            logger,
            logging.DEBUG,
            "job_enqueued",
            job_id=job.id,
            job_type=job_type,
            queue=queue,
            delay_seconds=delay_seconds,
        )
        return job

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def run_until_idle(self, *, max_jobs: int | None = None, wait_for_delayed: bool = False) -> int:
        """
        Drain the queues in the calling thread and return the number of jobs
        processed. With wait_for_delayed, sleep until parked jobs come due
        instead of returning.
        """

        processed = 0
        while max_jobs is None or processed < max_jobs:
            job = self._take_next()
            if job is None:
                wait_seconds = self._seconds_until_next_due()
                if not wait_for_delayed or wait_seconds is None:
                    break
                self._sleep(wait_seconds)
                continue
            self._process(job)
            processed += 1
        return processed

    def start(self) -> None:
        with self._condition:
            if self._workers:
                return
            self._stopping = False
            for index in range(self._settings.concurrency):
                worker = threading.Thread(
                    target=self._worker_loop,
                    name=f"task-worker-{index}",
                    daemon=True,
                )
                self._workers.append(worker)
        for worker in self._workers:
            worker.start()
        log_event(logger, logging.INFO, "orchestrator_started", workers=len(self._workers))

    def shutdown(self, wait: bool = True) -> None:
        with self._condition:
            self._stopping = True
            self._condition.notify_all()
            workers = list(self._workers)
        if wait:
            for worker in workers:
                worker.join()
        with self._condition:
            self._workers = []
        log_event(logger, logging.INFO, "orchestrator_stopped", waited=wait)

    def _worker_loop(self) -> None:
        while True:
            with self._condition:
                if self._stopping:
                    return
            job = self._take_next()
            if job is None:
                with self._condition:
                    if self._stopping:
                        return
                    wait_seconds = self._seconds_until_next_due()
                    timeout = self._settings.poll_interval_seconds
                    if wait_seconds is not None:
                        timeout = min(timeout, max(wait_seconds, 0.01))
                    self._condition.wait(timeout=timeout)
                continue
            self._process(job)

    def _take_next(self) -> Job | None:
        with self._condition:
            self._promote_due()
            ready = [name for name, jobs in self._queues.items() if jobs]
            if not ready:
                return None
            if len(ready) == 1:
                chosen = ready[0]
            else:
                chosen = self._rng.choices(ready, weights=[self._weights[name] for name in ready])[0]
            self._in_flight += 1
            return self._queues[chosen].popleft()

    def _process(self, job: Job) -> None:
        job.attempt += 1
        started = time.monotonic()
        try:
            handler = self._handlers.get(job.job_type)
            if handler is None:
                raise UnknownJobTypeError(f"No handler registered for '{job.job_type}'.")
            try:
                payload = json.loads(job.payload)
            except json.JSONDecodeError as exc:
                raise PayloadDecodeError(f"Payload is not valid JSON: {exc}") from exc
            handler(payload)
        except NonRetryableJobError as exc:
            self._dead_letter(job, exc)
        except Exception as exc:
            self._retry_or_dead_letter(job, exc)
        else:
            with self._condition:
                self._counters["processed"] += 1
            log_event(
                logger,
                logging.INFO,
                "job_completed",
                job_id=job.id,
                job_type=job.job_type,
                queue=job.queue,
                attempt=job.attempt,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )
        finally:
            with self._condition:
                self._in_flight -= 1
                self._condition.notify_all()

    def backoff_seconds(self, attempt: int) -> float:
        delay = self._settings.backoff_initial_seconds * (
            self._settings.backoff_multiplier ** max(0, attempt - 1)
        )
        return min(delay, self._settings.backoff_max_seconds)

    def _retry_or_dead_letter(self, job: Job, exc: Exception) -> None:
        job.last_error = f"{type(exc).__name__}: {exc}"
        with self._condition:
            self._counters["failed"] += 1
        retries_used = job.attempt - 1
        if retries_used >= job.max_retries:
            self._dead_letter(job, exc)
            return

        delay = self.backoff_seconds(job.attempt)
        with self._condition:
            self._counters["retried"] += 1
            self._schedule(job, self._clock() + delay)
            self._condition.notify()
        log_event(
            logger,
            logging.WARNING,
            "job_retry_scheduled",
            job_id=job.id,
            job_type=job.job_type,
            attempt=job.attempt,
            retry_in_seconds=round(delay, 3),
            **error_fields(exc),
        )

    def _dead_letter(self, job: Job, exc: Exception) -> None:
        job.last_error = f"{type(exc).__name__}: {exc}"
        with self._condition:
            self._counters["dead_lettered"] += 1
            self._dead_letters.append(job)
        log_event(
            logger,
            logging.ERROR,
            "job_dead_lettered",
            job_id=job.id,
            job_type=job.job_type,
            queue=job.queue,
            attempt=job.attempt,
            payload=job.payload,
            **error_fields(exc),
        )

    # ------------------------------------------------------------------
    # Scheduling helpers (call with the condition held)
    # ------------------------------------------------------------------

    def _schedule(self, job: Job, available_at: float) -> None:
        job.available_at = available_at
        heapq.heappush(self._scheduled, (available_at, next(self._sequence), job))

    def _promote_due(self) -> None:
        now = self._clock()
        while self._scheduled and self._scheduled[0][0] <= now:
            _, _, job = heapq.heappop(self._scheduled)
            self._queues[job.queue].append(job)

    def _seconds_until_next_due(self) -> float | None:
        with self._condition:
            if not self._scheduled:
                return None
            return max(0.0, self._scheduled[0][0] - self._clock())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def dead_letters(self) -> list[Job]:
        with self._condition:
            return list(self._dead_letters)

    def pending_jobs(self, queue: str | None = None) -> list[Job]:
        with self._condition:
            names = [queue] if queue else list(self._queues)
            return [job for name in names for job in self._queues.get(name, ())]

    def stats(self) -> dict[str, Any]:
        with self._condition:
            return {
                "queues": {name: len(jobs) for name, jobs in self._queues.items()},
                "weights": dict(self._weights),
                "scheduled": len(self._scheduled),
                "in_flight": self._in_flight,
                "workers": len(self._workers),
                "dead_letter": len(self._dead_letters),
                **self._counters,
            }
