from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI

from app.api.dependencies import get_orchestrator
from app.jobs.orchestrator import TaskOrchestrator
from app.schemas.scraping import HealthResponse
from app.scraping.logging_utils import configure_logging


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.
    Does NOT auto-migrate; a missing table aborts startup.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def _workers_enabled() -> bool:
    return os.getenv("RUN_WORKERS_IN_API", "true").strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate the database, then start the task workers and the scheduler; stop both on exit."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    if not _workers_enabled():
        log.info("Task workers disabled for this process")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    orchestrator = get_orchestrator()
    orchestrator.start()
    scheduler = build_scheduler(orchestrator)
    scheduler.start()
    log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        log.info("Scheduler shut down")
        orchestrator.shutdown(wait=True)


def create_app(*, lifespan=_lifespan) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    from db.config import load_env_files

    load_env_files()
    configure_logging()

    application = FastAPI(
        title="Quote Aggregation API",
        version="1.0.0",
        lifespan=lifespan,
    )

    from app.api.routers import quotes_router, scraping_router

    application.include_router(quotes_router)
    application.include_router(scraping_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck(orchestrator: TaskOrchestrator = Depends(get_orchestrator)) -> HealthResponse:
        return HealthResponse(status="ok", workers=orchestrator.stats()["workers"])

    return application


app = create_app()
