"""Runtime configuration for the Phim Admin API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.paths import default_database_url


class AdminSettings(BaseSettings):
    """Environment-aware settings for the admin service."""

    catalog_api_url: str = Field(
        "https://phimapi.com", description="Base URL for the remote movie catalog API."
    )
    catalog_timeout: float = Field(
        default=20.0, description="Timeout in seconds applied to remote catalog requests."
    )
    database_url: str = Field(
        default_factory=default_database_url,
        description="SQLAlchemy connection URL for the admin database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis-backed job queue.",
    )
    redis_queue_name: str = Field(
        default="phim-admin",
        description="RQ queue name used for crawl and maintenance jobs.",
    )
    queue_worker_name: str = Field(
        default="admin-worker",
        description="Identifier used when reporting job worker executions.",
    )
    trash_retention_days: int = Field(
        default=30,
        ge=1,
        description="Days a soft-deleted row stays in the trash before the sweep purges it.",
    )
    log_level: str = Field(default="INFO", description="Root logging level for entry points.")

    model_config = SettingsConfigDict(
        env_prefix="PHIMADMIN_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
