"""
Job type tags, queue names and validated payload models.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.jobs.errors import PayloadDecodeError

SCRAPE_TARGET = "scrape:target"
SCRAPE_ALL = "scrape:all"
SCRAPE_ENRICH = "scrape:enrich"
SCRAPE_DEDUPE = "scrape:dedupe"
CLEANUP_OLD_DATA = "cleanup:old_data"
QUOTE_SCRAPE = "quote:scrape"

QUEUE_CRITICAL = "critical"
QUEUE_DEFAULT = "default"
QUEUE_LOW = "low"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ScrapeTargetPayload(_Payload):
    target_id: uuid.UUID


class ScrapeAllPayload(_Payload):
    force: bool = False


class EnrichPayload(_Payload):
    target_id: uuid.UUID


class DedupePayload(_Payload):
    target_id: uuid.UUID


class CleanupPayload(_Payload):
    days_old: int = Field(default=30, ge=1)


class QuoteScrapePayload(_Payload):
    quote_id: uuid.UUID


PayloadT = TypeVar("PayloadT", bound=BaseModel)


def decode_payload(model: type[PayloadT], data: Any) -> PayloadT:
    """
    Validate a decoded JSON payload against `model`.

    Validation failures become PayloadDecodeError so the job is not retried.
    """

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PayloadDecodeError(f"Invalid {model.__name__}: {exc.errors()}") from exc


def encode_payload(payload: BaseModel | dict[str, Any]) -> str:
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    return json.dumps(payload, default=str, sort_keys=True)


@dataclass
class Job:
    """
    One queued unit of work. The payload stays a JSON string until a
    worker picks the job up.
    """

    job_type: str
    payload: str
    queue: str
    max_retries: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempt: int = 0
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    available_at: float = 0.0
    last_error: str | None = None

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_type": self.job_type,
            "queue": self.queue,
            "attempt": self.attempt,
            "max_retries": self.max_retries,
            "enqueued_at": self.enqueued_at.isoformat(),
            "last_error": self.last_error,
        }
