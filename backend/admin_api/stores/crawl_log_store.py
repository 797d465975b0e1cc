"""Persistence helpers for crawl run logs."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import func
from sqlmodel import Session, select

from ..models import CrawlLogRecord
from ..schemas import CrawlLogModel

TERMINAL_STATUSES = frozenset({"success", "error"})


class CrawlLogStore:
    """Create crawl log rows and move them once into a terminal status."""

    def __init__(self, engine) -> None:
        self._engine = engine

    def start(self, label: str) -> CrawlLogModel:
        """Insert a ``running`` entry for a batch crawl."""

        record = CrawlLogRecord(type=label, status="running")
        with Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return CrawlLogModel.model_validate(record)

    def finish(
        self,
        log_id: str,
        *,
        status: str,
        movies_added: int,
        movies_updated: int,
        duration: str,
        message: str | None = None,
    ) -> CrawlLogModel:
        """Transition a running entry to its terminal status."""

        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Invalid terminal status: {status}")

        with Session(self._engine) as session:
            record = session.get(CrawlLogRecord, log_id)
            if record is None:
                raise RuntimeError(f"Crawl log {log_id} not found")
            if record.status in TERMINAL_STATUSES:
                raise RuntimeError(f"Crawl log {log_id} is already {record.status}")

            record.status = status
            record.movies_added = movies_added
            record.movies_updated = movies_updated
            record.duration = duration
            record.message = message
            record.finished_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return CrawlLogModel.model_validate(record)

    def record(
        self,
        label: str,
        *,
        status: str,
        movies_added: int,
        movies_updated: int,
        duration: str,
        message: str | None = None,
    ) -> CrawlLogModel:
        """Write a single entry that is terminal from the start."""

        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Invalid terminal status: {status}")

        now = datetime.utcnow()
        record = CrawlLogRecord(
            type=label,
            status=status,
            movies_added=movies_added,
            movies_updated=movies_updated,
            duration=duration,
            message=message,
            created_at=now,
            finished_at=now,
        )
        with Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return CrawlLogModel.model_validate(record)

    def get(self, log_id: str) -> CrawlLogModel | None:
        with Session(self._engine) as session:
            record = session.get(CrawlLogRecord, log_id)
            return CrawlLogModel.model_validate(record) if record else None

    def list(self, *, limit: int = 50, status: str | None = None) -> list[CrawlLogModel]:
        """Return the most recent crawl logs, newest first."""

        statement = select(CrawlLogRecord)
        if status:
            statement = statement.where(CrawlLogRecord.status == status)
        statement = statement.order_by(CrawlLogRecord.created_at.desc()).limit(limit)
        with Session(self._engine) as session:
            records: Iterable[CrawlLogRecord] = session.exec(statement)
            return [CrawlLogModel.model_validate(record) for record in records]

    def status_counts(self) -> dict[str, int]:
        with Session(self._engine) as session:
            rows = session.exec(
                select(CrawlLogRecord.status, func.count())
                .group_by(CrawlLogRecord.status)
                .order_by(CrawlLogRecord.status)
            ).all()
        return {status: count for status, count in rows}

    def last_created_at(self) -> datetime | None:
        with Session(self._engine) as session:
            return session.exec(
                select(CrawlLogRecord.created_at)
                .order_by(CrawlLogRecord.created_at.desc())
                .limit(1)
            ).first()
