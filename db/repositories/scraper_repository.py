"""
Repositories for scrape targets, run history and content-addressed rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.scraped_row import ScrapedRow
from db.models.scraper_run import ScraperRun, ScraperRunStatus
from db.models.scraper_target import ScraperTarget
from db.repositories.errors import RecordNotFoundError


class ScraperTargetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, target_id: uuid.UUID) -> ScraperTarget | None:
        return self._session.get(ScraperTarget, target_id)

    def get_required(self, target_id: uuid.UUID) -> ScraperTarget:
        target = self.get(target_id)
        if target is None:
            raise RecordNotFoundError(f"Scraper target not found: {target_id}")
        return target

    def list_targets(self, *, enabled_only: bool = False) -> list[ScraperTarget]:
        stmt: Select[tuple[ScraperTarget]] = select(ScraperTarget)
        if enabled_only:
            stmt = stmt.where(ScraperTarget.enabled.is_(True))
        stmt = stmt.order_by(ScraperTarget.name.asc(), ScraperTarget.id.asc())
        return list(self._session.scalars(stmt).all())

    def list_enabled(self) -> list[ScraperTarget]:
        return self.list_targets(enabled_only=True)

    def list_active(self) -> list[ScraperTarget]:
        stmt = (
            select(ScraperTarget)
            .where(ScraperTarget.is_active.is_(True))
            .order_by(ScraperTarget.name.asc(), ScraperTarget.id.asc())
        )
        return list(self._session.scalars(stmt).all())


class ScraperRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(self, *, target_id: uuid.UUID) -> ScraperRun:
        run = ScraperRun(target_id=target_id, status=ScraperRunStatus.PENDING)
        self._session.add(run)
        self._session.flush()
        return run

    def get(self, run_id: uuid.UUID) -> ScraperRun | None:
        return self._session.get(ScraperRun, run_id)

    def list_runs(
        self,
        *,
        limit: int = 100,
        target_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ScraperRun]:
        stmt: Select[tuple[ScraperRun]] = select(ScraperRun)
        if target_id is not None:
            stmt = stmt.where(ScraperRun.target_id == target_id)
        if status:
            stmt = stmt.where(ScraperRun.status == status)
        stmt = stmt.order_by(ScraperRun.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def latest_for_target(self, target_id: uuid.UUID) -> ScraperRun | None:
        stmt = (
            select(ScraperRun)
            .where(ScraperRun.target_id == target_id)
            .order_by(ScraperRun.created_at.desc(), ScraperRun.started_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def mark_running(self, run: ScraperRun) -> ScraperRun:
        run.status = ScraperRunStatus.RUNNING
        run.started_at = datetime.now(timezone.utc)
        run.finished_at = None
        run.error_message = None
        return run

    def mark_completed(self, run: ScraperRun, *, stats: dict[str, Any]) -> ScraperRun:
        run.status = ScraperRunStatus.COMPLETED
        run.finished_at = datetime.now(timezone.utc)
        run.stats_json = stats
        run.error_message = None
        return run

    def mark_failed(
        self,
        run: ScraperRun,
        *,
        error_message: str,
        stats: dict[str, Any] | None = None,
    ) -> ScraperRun:
        run.status = ScraperRunStatus.FAILED
        run.finished_at = datetime.now(timezone.utc)
        run.error_message = error_message
        if stats is not None:
            run.stats_json = stats
        return run

    def delete_older_than(self, cutoff: datetime) -> int:
        result = self._session.execute(delete(ScraperRun).where(ScraperRun.created_at < cutoff))
        return int(result.rowcount or 0)


class ScrapedRowRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_hash(self, hash_key: str) -> ScrapedRow | None:
        stmt = select(ScrapedRow).where(ScrapedRow.hash_key == hash_key).limit(1)
        return self._session.scalars(stmt).first()

    def insert_if_absent(
        self,
        *,
        target_id: uuid.UUID,
        url: str,
        row_type: str,
        hash_key: str,
        raw_json: dict[str, Any] | None,
        normalized_json: dict[str, Any] | None,
    ) -> bool:
        """
        Insert a row unless its hash is already stored.

        Returns True when a row was written. The unique constraint decides
        races between concurrent writers; the loser's SAVEPOINT is rolled
        back and the outer transaction keeps going.
        """

        if self.get_by_hash(hash_key) is not None:
            return False

        row = ScrapedRow(
            target_id=target_id,
            url=url,
            row_type=row_type,
            hash_key=hash_key,
            raw_json=raw_json,
            normalized_json=normalized_json,
        )
        try:
            with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            return False
        return True

    def count(self, *, target_id: uuid.UUID | None = None) -> int:
        stmt = select(func.count()).select_from(ScrapedRow)
        if target_id is not None:
            stmt = stmt.where(ScrapedRow.target_id == target_id)
        return int(self._session.scalar(stmt) or 0)

    def list_for_target(self, target_id: uuid.UUID) -> list[ScrapedRow]:
        stmt = (
            select(ScrapedRow)
            .where(ScrapedRow.target_id == target_id)
            .order_by(ScrapedRow.created_at.asc(), ScrapedRow.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def find_duplicate_hashes(self, target_id: uuid.UUID) -> list[str]:
        stmt = (
            select(ScrapedRow.hash_key)
            .where(ScrapedRow.target_id == target_id)
            .group_by(ScrapedRow.hash_key)
            .having(func.count(ScrapedRow.id) > 1)
        )
        return list(self._session.scalars(stmt).all())

    def list_by_hash(self, target_id: uuid.UUID, hash_key: str) -> list[ScrapedRow]:
        stmt = (
            select(ScrapedRow)
            .where(ScrapedRow.target_id == target_id, ScrapedRow.hash_key == hash_key)
            .order_by(ScrapedRow.created_at.asc(), ScrapedRow.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def update_normalized(self, row: ScrapedRow, normalized_json: dict[str, Any]) -> ScrapedRow:
        row.normalized_json = normalized_json
        return row

    def delete_rows(self, rows: list[ScrapedRow]) -> int:
        for row in rows:
            self._session.delete(row)
        return len(rows)

    def delete_older_than(self, cutoff: datetime) -> int:
        result = self._session.execute(delete(ScrapedRow).where(ScrapedRow.created_at < cutoff))
        return int(result.rowcount or 0)
