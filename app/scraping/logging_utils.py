"""
Structured logging helpers for the scraping and job pipeline.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Values that are not JSON-native (UUIDs, Decimals, datetimes) are
    rendered with str(). Pass exc_info=True from an except block to attach
    the traceback after the JSON payload.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True), exc_info=exc_info)


def error_fields(exc: BaseException) -> dict[str, str]:
    """Return the error_type/error pair attached to failure events."""

    return {"error_type": type(exc).__name__, "error": str(exc)}


def configure_logging() -> None:
    """
    Configure root logging once per process from LOG_LEVEL.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
