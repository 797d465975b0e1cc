"""Background job endpoints: inspect crawl and sweep jobs, cancel queued ones."""
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..dependencies import get_job_log_store, get_job_queue, get_job_store
from ..schemas import JobCancelRequest, JobLogModel, JobModel
from ..services.queue import JobQueueService
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStateError, JobStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _require_job(job_id: str, store: JobStore) -> JobModel:
    job = store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("", response_model=list[JobModel])
def list_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    statuses: Annotated[list[str] | None, Query(alias="status", description="Repeat to match several statuses.")] = None,
    job_type: Annotated[str | None, Query(alias="type", description="crawl_pages, crawl_urls, crawl_movie or trash_sweep.")] = None,
    store: JobStore = Depends(get_job_store),
) -> list[JobModel]:
    """Return the newest jobs first."""

    return store.list(limit=limit, statuses=statuses, job_type=job_type)


@router.get("/{job_id}", response_model=JobModel)
def get_job(job_id: str, store: JobStore = Depends(get_job_store)) -> JobModel:
    return _require_job(job_id, store)


@router.post("/{job_id}/cancel", response_model=JobModel)
def cancel_job(
    job_id: str,
    request: JobCancelRequest | None = Body(default=None),
    store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Cancel a queued or running job.

    A queued job is withdrawn from redis and never starts. A running crawl
    stops at its next progress report; movies it already saved stay saved.
    """

    _require_job(job_id, store)
    reason = request.reason if request else None
    try:
        job = store.cancel(job_id, reason=reason)
    except JobStateError as exc:
        raise HTTPException(status_code=409, detail=f"Job already {exc.current}") from exc

    withdrawn = queue.withdraw(job_id)
    log_store.warning(
        job_id,
        "Job cancelled",
        withdrawn=withdrawn,
        **({"reason": reason} if reason else {}),
    )
    return job


@router.get("/{job_id}/logs", response_model=list[JobLogModel])
def list_job_logs(
    job_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    levels: Annotated[list[str] | None, Query(alias="level")] = None,
    store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
) -> list[JobLogModel]:
    _require_job(job_id, store)
    return log_store.list_for_job(job_id, limit=limit, levels=levels)
