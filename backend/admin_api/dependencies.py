"""FastAPI dependencies for the Phim Admin API."""
from fastapi import Depends, Request

from .services.catalog_client import CatalogClient
from .services.queue import JobQueueService
from .settings import AdminSettings
from .state import AppState
from .stores.config_store import ConfigStore
from .stores.crawl_log_store import CrawlLogStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.movie_store import MovieStore
from .stores.taxonomy_store import TaxonomyStore
from .stores.trash_store import TrashStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_settings(app_state: AppState = Depends(get_app_state)) -> AdminSettings:
    return app_state.settings


def get_config_store(app_state: AppState = Depends(get_app_state)) -> ConfigStore:
    """Return the configuration store dependency."""
    return app_state.config_store


def get_job_store(app_state: AppState = Depends(get_app_state)) -> JobStore:
    return app_state.job_store


def get_job_log_store(app_state: AppState = Depends(get_app_state)) -> JobLogStore:
    return app_state.job_log_store


def get_crawl_log_store(app_state: AppState = Depends(get_app_state)) -> CrawlLogStore:
    return app_state.crawl_log_store


def get_movie_store(app_state: AppState = Depends(get_app_state)) -> MovieStore:
    return app_state.movie_store


def get_taxonomy_store(app_state: AppState = Depends(get_app_state)) -> TaxonomyStore:
    return app_state.taxonomy_store


def get_trash_store(app_state: AppState = Depends(get_app_state)) -> TrashStore:
    return app_state.trash_store


def get_job_queue(app_state: AppState = Depends(get_app_state)) -> JobQueueService:
    return app_state.job_queue


def get_catalog_client(app_state: AppState = Depends(get_app_state)) -> CatalogClient:
    """Return the client used for remote catalog passthrough endpoints."""
    return app_state.catalog_client
