"""RQ task entrypoints executed by background workers."""
from __future__ import annotations

import logging
from typing import Any, Callable

from rq import get_current_job
from sqlalchemy.engine import Engine

from ..db import create_engine_from_settings
from ..schemas import CrawlOptions
from ..settings import AdminSettings
from ..stores.crawl_log_store import CrawlLogStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStateError, JobStore
from ..stores.trash_store import TrashStore
from .catalog_client import CatalogClient
from .synchronizer import CatalogSynchronizer, SyncResult

logger = logging.getLogger(__name__)

CRAWL_JOB_TYPES = ("crawl_pages", "crawl_urls", "crawl_movie")
JOB_TYPES = CRAWL_JOB_TYPES + ("trash_sweep",)


class JobCancelled(Exception):
    """Stops a crawl whose job was cancelled while it ran."""


def build_catalog_client(settings: AdminSettings) -> CatalogClient:
    """Create the remote catalog client used by crawl jobs."""

    return CatalogClient(settings.catalog_api_url, timeout=settings.catalog_timeout)


def execute_admin_job(
    *,
    job_id: str,
    job_type: str,
    payload: dict[str, Any] | None,
    settings: dict[str, Any],
    worker_name: str,
) -> dict[str, Any] | None:
    """Background worker entrypoint for crawl and maintenance jobs.

    Jobs that are no longer queued when the worker reaches them are skipped,
    so a cancelled job never touches the catalog.
    """

    resolved_settings = AdminSettings.model_validate(settings)
    engine = create_engine_from_settings(resolved_settings)
    job_store = JobStore(engine)
    log_store = JobLogStore(engine)

    current_job = get_current_job()
    worker_id = worker_name
    if current_job and getattr(current_job, "worker_name", None):  # pragma: no cover - runtime path
        worker_id = current_job.worker_name  # type: ignore[assignment]

    try:
        job = job_store.get(job_id)
        if job is None or job.status != "queued":
            logger.info("Skipping job %s: %s", job_id, job.status if job else "no such job")
            if job is not None:
                log_store.info(job_id, f"Skipped by {worker_id}: job is {job.status}")
            return None

        job_store.start(job_id, worker_id=worker_id)
        log_store.info(job_id, f"Running {job_type} on {worker_id}", **({"payload": payload} if payload else {}))
        if job_type in CRAWL_JOB_TYPES:
            result = _execute_crawl_job(job_id, job_type, payload or {}, engine, resolved_settings, job_store, log_store)
        elif job_type == "trash_sweep":
            result = _execute_trash_sweep(job_id, engine, resolved_settings, log_store)
        else:
            log_store.warning(job_id, f"Unknown job type: {job_type}")
            result = None

        job_store.complete(job_id, result=result)
        log_store.info(job_id, "Job completed")
        return result
    except (JobCancelled, JobStateError) as exc:
        logger.info("Job %s stopped: %s", job_id, exc)
        log_store.warning(job_id, "Job stopped after cancellation")
        return None
    except Exception as exc:
        logger.exception("Job %s (%s) failed", job_id, job_type)
        job_store.fail(job_id, error_message=str(exc))
        log_store.error(job_id, "Job failed", error=str(exc))
        raise
    finally:
        engine.dispose()


def _item_logger(job_id: str, log_store: JobLogStore) -> Callable[[SyncResult], None]:
    def _log(result: SyncResult) -> None:
        if result.success:
            action = "Updated" if result.updated else "Added"
            log_store.info(job_id, f"{action} movie {result.slug}", movie_id=result.movie_id)
        else:
            log_store.warning(job_id, f"Failed movie {result.slug}", error=result.message)

    return _log


def _execute_crawl_job(
    job_id: str,
    job_type: str,
    payload: dict[str, Any],
    engine: Engine,
    settings: AdminSettings,
    job_store: JobStore,
    log_store: JobLogStore,
) -> dict[str, Any]:
    """Run one synchronizer invocation, mirroring its progress onto the job."""

    options = CrawlOptions.model_validate(payload.get("options") or {})

    def _progress(fraction: float, message: str) -> None:
        try:
            job_store.report_progress(job_id, fraction)
        except JobStateError as exc:
            raise JobCancelled("Cancelled while crawling") from exc
        logger.debug("Job %s progress %.2f: %s", job_id, fraction, message)

    with build_catalog_client(settings) as client:
        synchronizer = CatalogSynchronizer(
            engine,
            client,
            CrawlLogStore(engine),
            options,
            on_progress=_progress,
            on_item=_item_logger(job_id, log_store),
        )
        if job_type == "crawl_pages":
            summary = synchronizer.sync_page_range(payload["from_page"], payload["to_page"])
            result = summary.as_dict()
        elif job_type == "crawl_urls":
            summary = synchronizer.sync_url_list(payload["urls"])
            result = summary.as_dict()
        else:
            result = synchronizer.sync_single(payload["url"]).as_dict()

    log_store.info(job_id, "Crawl finished", result=result)
    return result


def _execute_trash_sweep(
    job_id: str,
    engine: Engine,
    settings: AdminSettings,
    log_store: JobLogStore,
) -> dict[str, Any]:
    store = TrashStore(engine, retention_days=settings.trash_retention_days)
    purged = store.sweep()
    log_store.info(job_id, f"Purged {sum(purged.values())} expired trash rows", purged=purged)
    return {"purged": purged}
