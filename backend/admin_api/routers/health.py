"""Health and dashboard endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_crawl_log_store, get_job_queue, get_movie_store
from ..schemas import DashboardMetricsModel, HealthStatus, QueueHealthStatus
from ..services.queue import JobQueueService
from ..stores.crawl_log_store import CrawlLogStore
from ..stores.movie_store import MovieStore

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(queue: JobQueueService = Depends(get_job_queue)) -> HealthStatus:
    """Return service heartbeat information."""

    queue_status = QueueHealthStatus(status="ok")
    if not queue.ping():
        queue_status = QueueHealthStatus(status="error", detail="queue_unreachable")
    return HealthStatus(queue=queue_status)


@router.get("/metrics", response_model=DashboardMetricsModel)
def dashboard_metrics(
    movie_store: MovieStore = Depends(get_movie_store),
    crawl_logs: CrawlLogStore = Depends(get_crawl_log_store),
) -> DashboardMetricsModel:
    """Return the counters shown on the admin landing page."""

    movies, episodes, trashed = movie_store.counts()
    return DashboardMetricsModel(
        movies=movies,
        episodes=episodes,
        trashed_movies=trashed,
        crawl_status_counts=crawl_logs.status_counts(),
        last_crawl_at=crawl_logs.last_created_at(),
    )
