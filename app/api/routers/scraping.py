"""
app/api/routers/scraping.py

Operator endpoints for scraper targets, run history and the job queues.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import to_http_error
from app.jobs.types import Job
from app.schemas.scraping import (
    JobAcceptedResponse,
    QueueStatsResponse,
    ScrapeRunRequest,
    ScraperRunResponse,
    ScraperTargetResponse,
)
from app.services.scraping_control_service import (
    ScrapingControlService,
    get_scraping_control_service,
)
from db.repositories.errors import RepositoryError
from db.session import get_db

router = APIRouter(prefix="/scraper", tags=["scraper"])


def _accepted(job: Job) -> JobAcceptedResponse:
    return JobAcceptedResponse(job_id=job.id, job_type=job.job_type, queue=job.queue)


@router.get("/targets", response_model=list[ScraperTargetResponse])
def list_targets(
    enabled_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    service: ScrapingControlService = Depends(get_scraping_control_service),
) -> list[ScraperTargetResponse]:
    targets = service.list_targets(db=db, enabled_only=enabled_only)
    return [ScraperTargetResponse.model_validate(target) for target in targets]


@router.get("/runs", response_model=list[ScraperRunResponse])
def list_runs(
    limit: int = Query(default=50, ge=1, le=500),
    target_id: uuid.UUID | None = Query(default=None),
    run_status: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    service: ScrapingControlService = Depends(get_scraping_control_service),
) -> list[ScraperRunResponse]:
    """
    Most recent runs first.
    """

    runs = service.list_runs(db=db, limit=limit, target_id=target_id, status=run_status)
    return [ScraperRunResponse.model_validate(run) for run in runs]


@router.post("/run", response_model=JobAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
def run_all(
    request: ScrapeRunRequest | None = None,
    service: ScrapingControlService = Depends(get_scraping_control_service),
) -> JobAcceptedResponse:
    force = request.force if request is not None else False
    return _accepted(service.run_all(force=force))


@router.post(
    "/targets/{target_id}/run",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def run_target(
    target_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: ScrapingControlService = Depends(get_scraping_control_service),
) -> JobAcceptedResponse:
    try:
        job = service.run_target(db=db, target_id=target_id)
    except RepositoryError as exc:
        raise to_http_error(exc) from exc
    return _accepted(job)


@router.get("/queue", response_model=QueueStatsResponse)
def queue_stats(
    service: ScrapingControlService = Depends(get_scraping_control_service),
) -> QueueStatsResponse:
    return QueueStatsResponse(**service.queue_stats())
