"""
app/api/dependencies.py

Shared FastAPI dependencies and repository-error translation.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from app.jobs.orchestrator import TaskOrchestrator
from db.repositories.errors import RecordNotFoundError, RepositoryError


def get_orchestrator() -> TaskOrchestrator:
    from app.jobs.worker import get_task_orchestrator

    return get_task_orchestrator()


def to_http_error(exc: RepositoryError) -> HTTPException:
    """
    Missing records become 404; every other repository refusal (illegal
    status transition, unapprovable offer, disabled target) becomes 409.
    """

    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
