"""Catalog crawl endpoints: enqueue synchronizer runs and browse their logs."""
from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import (
    get_config_store,
    get_crawl_log_store,
    get_job_queue,
)
from ..schemas import (
    ConfigUpdate,
    CrawlLogModel,
    CrawlMovieRequest,
    CrawlPagesRequest,
    CrawlUrlsRequest,
    JobModel,
)
from ..services.queue import JobQueueError, JobQueueService
from ..services.synchronizer import (
    CrawlValidationError,
    require_movie_slug,
    split_url_lines,
    validate_page_range,
)
from ..stores.config_store import ConfigStore
from ..stores.crawl_log_store import CrawlLogStore

router = APIRouter(prefix="/crawl", tags=["crawl"])


def _enqueue_crawl(
    job_type: str,
    payload: dict[str, Any],
    overrides: ConfigUpdate | None,
    config_store: ConfigStore,
    queue: JobQueueService,
) -> JobModel:
    payload["options"] = config_store.resolve_options(overrides).model_dump()
    try:
        return queue.submit(job_type, payload)
    except JobQueueError as exc:  # pragma: no cover - queue failures
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.post("/pages", response_model=JobModel, status_code=201)
def crawl_pages(
    request: CrawlPagesRequest,
    config_store: ConfigStore = Depends(get_config_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Queue a crawl of every movie on an inclusive range of listing pages."""

    try:
        from_page, to_page = validate_page_range(request.from_page, request.to_page)
    except CrawlValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _enqueue_crawl(
        "crawl_pages",
        {"from_page": from_page, "to_page": to_page},
        request.options,
        config_store,
        queue,
    )


@router.post("/urls", response_model=JobModel, status_code=201)
def crawl_urls(
    request: CrawlUrlsRequest,
    config_store: ConfigStore = Depends(get_config_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Queue a crawl of a newline separated list of movie URLs."""

    try:
        lines = split_url_lines(request.urls)
    except CrawlValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _enqueue_crawl(
        "crawl_urls",
        {"urls": "\n".join(lines)},
        request.options,
        config_store,
        queue,
    )


@router.post("/movie", response_model=JobModel, status_code=201)
def crawl_movie(
    request: CrawlMovieRequest,
    config_store: ConfigStore = Depends(get_config_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Queue a crawl of a single movie URL."""

    try:
        require_movie_slug(request.url)
    except CrawlValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _enqueue_crawl(
        "crawl_movie",
        {"url": request.url.strip()},
        request.options,
        config_store,
        queue,
    )


@router.get("/logs", response_model=list[CrawlLogModel])
def list_crawl_logs(
    limit: int = Query(default=50, ge=1, le=200),
    status: Literal["running", "success", "error"] | None = Query(default=None),
    store: CrawlLogStore = Depends(get_crawl_log_store),
) -> list[CrawlLogModel]:
    """Return the most recent crawl runs, newest first."""

    return store.list(limit=limit, status=status)


@router.get("/logs/{log_id}", response_model=CrawlLogModel)
def get_crawl_log(log_id: str, store: CrawlLogStore = Depends(get_crawl_log_store)) -> CrawlLogModel:
    log = store.get(log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Crawl log not found")
    return log
