"""Persistence for crawl and maintenance jobs and their status transitions."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any
from uuid import uuid4

from sqlmodel import Session, select

from ..models import JobRecord
from ..schemas import JobModel

TERMINAL_STATUSES = frozenset({"completed", "failed", "cancelled"})

# status -> statuses it may move to
_TRANSITIONS: dict[str, frozenset[str]] = {
    "queued": frozenset({"running", "failed", "cancelled"}),
    "running": frozenset({"running", "completed", "failed", "cancelled"}),
}


class JobStateError(RuntimeError):
    """Raised when a job is asked to leave a finished status."""

    def __init__(self, job_id: str, current: str, requested: str) -> None:
        super().__init__(f"Job {job_id} is {current} and cannot become {requested}")
        self.job_id = job_id
        self.current = current
        self.requested = requested


class JobStore:
    """Stores job rows. Once a job finishes its status never changes again."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def create(self, job_type: str, payload: dict[str, Any] | None = None) -> JobModel:
        record = JobRecord(id=uuid4().hex, type=job_type, status="queued", progress=0.0, payload=payload)
        with self._lock, Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def list(
        self,
        *,
        limit: int = 50,
        statuses: list[str] | None = None,
        job_type: str | None = None,
    ) -> list[JobModel]:
        """Newest jobs first, optionally narrowed to some statuses or one type."""

        statement = select(JobRecord)
        wanted = {status.lower() for status in statuses or () if status}
        if wanted:
            statement = statement.where(JobRecord.status.in_(sorted(wanted)))
        if job_type:
            statement = statement.where(JobRecord.type == job_type)
        statement = statement.order_by(JobRecord.created_at.desc()).limit(limit)
        with Session(self._engine) as session:
            return [_to_model(record) for record in session.exec(statement)]

    def get(self, job_id: str) -> JobModel | None:
        with Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            return _to_model(record) if record else None

    def is_cancelled(self, job_id: str) -> bool:
        job = self.get(job_id)
        return job is not None and job.status == "cancelled"

    def start(self, job_id: str, *, worker_id: str | None = None) -> JobModel:
        now = datetime.utcnow()
        return self._transition(job_id, "running", progress=0.0, started_at=now, worker_id=worker_id)

    def report_progress(self, job_id: str, fraction: float) -> JobModel:
        """Record crawl progress. Raises JobStateError once the job was cancelled."""

        return self._transition(job_id, "running", progress=min(max(fraction, 0.0), 1.0))

    def complete(self, job_id: str, *, result: dict[str, Any] | None = None) -> JobModel:
        return self._transition(job_id, "completed", progress=1.0, finished_at=datetime.utcnow(), result=result)

    def fail(self, job_id: str, *, error_message: str) -> JobModel:
        return self._transition(job_id, "failed", finished_at=datetime.utcnow(), error_message=error_message)

    def cancel(self, job_id: str, *, reason: str | None = None) -> JobModel:
        return self._transition(job_id, "cancelled", finished_at=datetime.utcnow(), error_message=reason)

    def _transition(self, job_id: str, status: str, **changes: Any) -> JobModel:
        with self._lock, Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None:
                raise KeyError(job_id)
            if status not in _TRANSITIONS.get(record.status, frozenset()):
                raise JobStateError(job_id, record.status, status)

            record.status = status
            for field, value in changes.items():
                if value is None:
                    continue
                if field == "started_at" and record.started_at is not None:
                    continue
                setattr(record, field, value)
            record.updated_at = datetime.utcnow()

            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)


def _to_model(record: JobRecord) -> JobModel:
    duration = None
    if record.started_at and record.finished_at:
        duration = (record.finished_at - record.started_at).total_seconds()
    return JobModel.model_validate(record, from_attributes=True).model_copy(update={"duration_seconds": duration})
