"""Hands admin jobs to the RQ worker and withdraws them again on cancel."""
from __future__ import annotations

import logging
from typing import Any

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

try:  # pragma: no cover - optional dependency for test environments
    import fakeredis
except ModuleNotFoundError:  # pragma: no cover - runtime path without fakeredis
    fakeredis = None  # type: ignore[assignment]

from ..schemas import JobModel
from ..settings import AdminSettings
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from .tasks import execute_admin_job

logger = logging.getLogger(__name__)

_WITHDRAWABLE = (JobStatus.QUEUED, JobStatus.DEFERRED, JobStatus.SCHEDULED)


class JobQueueError(RuntimeError):
    """Raised when the queue cannot accept a job."""


def connect_redis(url: str) -> Redis:
    """Open the queue connection. ``fakeredis://`` gives an in-process server."""

    if url.startswith("fakeredis://"):
        if fakeredis is None:  # pragma: no cover - safety branch
            raise JobQueueError("fakeredis is required for fakeredis:// URLs")
        return fakeredis.FakeRedis()  # type: ignore[return-value]
    return Redis.from_url(url)


class JobQueueService:
    """Pairs every persisted job with an RQ job of the same id."""

    def __init__(self, settings: AdminSettings, job_store: JobStore, log_store: JobLogStore) -> None:
        self._settings = settings
        self._job_store = job_store
        self._log_store = log_store
        self.connection = connect_redis(settings.redis_url)
        self.queue = Queue(settings.redis_queue_name, connection=self.connection)

    def ping(self) -> bool:
        try:
            return bool(self.connection.ping())
        except RedisError:
            return False

    def submit(self, job_type: str, payload: dict[str, Any] | None = None) -> JobModel:
        """Create the job row, then queue ``execute_admin_job`` for it."""

        job = self._job_store.create(job_type, payload)
        self._log_store.info(job.id, f"Queued {job_type}", **({"payload": payload} if payload else {}))
        try:
            self.queue.enqueue(
                execute_admin_job,
                job_id=job.id,
                job_timeout=-1,
                kwargs={
                    "job_id": job.id,
                    "job_type": job_type,
                    "payload": payload,
                    "settings": self._settings.model_dump(),
                    "worker_name": self._settings.queue_worker_name,
                },
            )
        except RedisError as exc:  # pragma: no cover - failure path
            self._log_store.error(job.id, "Queue unavailable", error=str(exc))
            self._job_store.fail(job.id, error_message="queue_unavailable")
            raise JobQueueError("Unable to enqueue job") from exc
        return job

    def withdraw(self, job_id: str) -> bool:
        """Pull a job out of RQ if no worker has picked it up yet.

        Returns False when the job is already running, finished or unknown to
        redis. The worker re-checks the stored status before starting, so a
        cancelled job is skipped even when this returns False.
        """

        try:
            rq_job = Job.fetch(job_id, connection=self.connection)
            if rq_job.get_status() not in _WITHDRAWABLE:
                return False
            rq_job.cancel()
        except NoSuchJobError:
            return False
        except RedisError as exc:  # pragma: no cover - failure path
            logger.warning("Could not withdraw job %s from the queue: %s", job_id, exc)
            return False
        return True
