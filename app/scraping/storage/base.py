"""
Storage interface for content-addressed scraped rows.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any


class ScrapedRowStorage(ABC):
    """
    Write side used by the static collector and the headless engine.
    """

    @abstractmethod
    def store_if_new(
        self,
        *,
        target_id: uuid.UUID,
        base_url: str,
        url: str,
        row_type: str,
        raw: dict[str, Any],
        normalized: dict[str, Any],
    ) -> bool:
        """
        Persist the row unless its content hash is already stored.

        Returns True when a new row was written.
        """
