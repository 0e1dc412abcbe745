"""
SQLAlchemy-backed storage implementation for scraped rows.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.scraping.normalization import content_hash
from app.scraping.storage.base import ScrapedRowStorage
from db.repositories.scraper_repository import ScrapedRowRepository


class SQLAlchemyScrapedRowStorage(ScrapedRowStorage):
    """
    Persist rows through the repository, committing each write so a failure
    on a later page cannot discard rows already collected.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session

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
        repository = ScrapedRowRepository(self._session)
        try:
            inserted = repository.insert_if_absent(
                target_id=target_id,
                url=url,
                row_type=row_type,
                hash_key=content_hash(base_url, raw),
                raw_json=raw,
                normalized_json=normalized,
            )
            self._session.commit()
            return inserted
        except SQLAlchemyError:
            self._session.rollback()
            raise
