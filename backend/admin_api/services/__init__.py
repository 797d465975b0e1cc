"""Service layer helpers for external integrations."""

from .catalog_client import (
    CatalogClient,
    CatalogClientError,
    CatalogListing,
    CatalogMovieDetail,
    CatalogStatus,
    CatalogTerm,
)
from .synchronizer import (
    CatalogSynchronizer,
    CrawlSummary,
    CrawlValidationError,
    SyncResult,
    require_movie_slug,
    split_url_lines,
    validate_page_range,
)

__all__ = [
    "CatalogClient",
    "CatalogClientError",
    "CatalogListing",
    "CatalogMovieDetail",
    "CatalogStatus",
    "CatalogTerm",
    "CatalogSynchronizer",
    "CrawlSummary",
    "CrawlValidationError",
    "SyncResult",
    "require_movie_slug",
    "split_url_lines",
    "validate_page_range",
]
