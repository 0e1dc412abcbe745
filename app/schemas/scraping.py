"""
app/schemas/scraping.py

Response schemas for the scraper control endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ScraperTargetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    logo_url: str | None = None
    base_url: str
    enabled: bool
    is_active: bool
    use_headless: bool
    rate_limit_ms: int = Field(..., ge=0)


class ScraperRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    target_id: uuid.UUID
    status: str
    started_at: datetime | None = None
    finished_at: datetime | None = None
    stats_json: dict[str, Any] | None = None
    error_message: str | None = None


class ScrapeRunRequest(BaseModel):
    force: bool = False


class JobAcceptedResponse(BaseModel):
    """
    Acknowledgement that a job was placed on a queue.
    """

    job_id: str
    job_type: str
    queue: str


class QueueStatsResponse(BaseModel):
    queues: dict[str, int]
    weights: dict[str, int]
    scheduled: int = Field(..., ge=0)
    in_flight: int = Field(..., ge=0)
    workers: int = Field(..., ge=0)
    dead_letter: int = Field(..., ge=0)
    enqueued: int = Field(..., ge=0)
    processed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    retried: int = Field(..., ge=0)
    dead_lettered: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    status: str
    workers: int = Field(..., ge=0)
