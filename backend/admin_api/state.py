"""Shared state container for the Phim Admin API."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from .db import create_engine_from_settings, init_database
from .services.catalog_client import CatalogClient
from .services.queue import JobQueueService
from .services.tasks import build_catalog_client
from .settings import AdminSettings
from .stores.config_store import ConfigStore
from .stores.crawl_log_store import CrawlLogStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.movie_store import MovieStore
from .stores.taxonomy_store import TaxonomyStore
from .stores.trash_store import TrashStore


@dataclass(slots=True)
class AppState:
    """Encapsulates mutable application state shared across routers."""

    settings: AdminSettings
    engine: Engine
    config_store: ConfigStore
    job_store: JobStore
    job_log_store: JobLogStore
    crawl_log_store: CrawlLogStore
    movie_store: MovieStore
    taxonomy_store: TaxonomyStore
    trash_store: TrashStore
    job_queue: JobQueueService
    catalog_client: CatalogClient

    def __init__(self, settings: AdminSettings) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine)
        self.config_store = ConfigStore(self.engine)
        self.job_store = JobStore(self.engine)
        self.job_log_store = JobLogStore(self.engine)
        self.crawl_log_store = CrawlLogStore(self.engine)
        self.movie_store = MovieStore(self.engine)
        self.taxonomy_store = TaxonomyStore(self.engine)
        self.trash_store = TrashStore(self.engine, retention_days=settings.trash_retention_days)
        self.job_queue = JobQueueService(settings, self.job_store, self.job_log_store)
        self.catalog_client = build_catalog_client(settings)

    def open(self) -> None:
        """Reopen the catalog client if a previous shutdown closed it."""

        if self.catalog_client.is_closed:
            self.catalog_client = build_catalog_client(self.settings)

    def close(self) -> None:
        self.catalog_client.close()
        self.engine.dispose()
