"""Router exports for the Phim Admin API."""
from . import catalog, config, crawl, health, jobs, movies, taxonomy, trash

__all__ = ["catalog", "config", "crawl", "health", "jobs", "movies", "taxonomy", "trash"]
