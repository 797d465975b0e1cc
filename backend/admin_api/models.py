"""Database models for the Phim Admin API."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return uuid4().hex


class ConfigRecord(SQLModel, table=True):
    """Persisted crawl defaults applied when a request does not override them."""

    __tablename__ = "admin_config"

    id: int | None = Field(default=None, primary_key=True)
    skip_genres: bool = Field(default=False)
    skip_countries: bool = Field(default=False)
    skip_directors: bool = Field(default=False)
    skip_actors: bool = Field(default=False)
    skip_episodes: bool = Field(default=False)
    reencode_images: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobRecord(SQLModel, table=True):
    """Background job metadata persisted for orchestration."""

    __tablename__ = "admin_jobs"

    id: str = Field(primary_key=True, index=True)
    type: str = Field(index=True)
    status: str = Field(default="queued", index=True)
    progress: float = Field(default=0.0)
    worker_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    started_at: datetime | None = Field(default=None, index=True)
    finished_at: datetime | None = Field(default=None, index=True)
    error_message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobLogRecord(SQLModel, table=True):
    """Structured log event associated with a background job."""

    __tablename__ = "admin_job_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    message: str
    context: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class CrawlLogRecord(SQLModel, table=True):
    """Run-level audit record for a catalog crawl."""

    __tablename__ = "crawl_logs"

    id: str = Field(default_factory=_new_id, primary_key=True)
    type: str
    status: str = Field(default="running", index=True)
    movies_added: int = Field(default=0)
    movies_updated: int = Field(default=0)
    duration: str | None = Field(default=None)
    message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    finished_at: datetime | None = Field(default=None)


class MovieRecord(SQLModel, table=True):
    """A movie or series keyed by its catalog slug."""

    __tablename__ = "movies"

    id: str = Field(default_factory=_new_id, primary_key=True)
    slug: str = Field(index=True, unique=True)
    name: str = Field(index=True)
    origin_name: str | None = Field(default=None)
    content: str | None = Field(default=None)
    type: str | None = Field(default=None, index=True)
    status: str | None = Field(default=None)
    year: int | None = Field(default=None, index=True)
    quality: str | None = Field(default=None)
    lang: str | None = Field(default=None)
    time: str | None = Field(default=None)
    poster_url: str | None = Field(default=None)
    thumb_url: str | None = Field(default=None)
    trailer_url: str | None = Field(default=None)
    episode_current: str | None = Field(default=None)
    episode_total: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class EpisodeRecord(SQLModel, table=True):
    """A playable episode grouped under a named server."""

    __tablename__ = "episodes"

    id: str = Field(default_factory=_new_id, primary_key=True)
    movie_id: str = Field(foreign_key="movies.id", index=True)
    server_name: str = Field(default="Server #1")
    name: str
    slug: str | None = Field(default=None)
    link_m3u8: str | None = Field(default=None)
    link_embed: str | None = Field(default=None)
    filename: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class GenreRecord(SQLModel, table=True):
    __tablename__ = "genres"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class CountryRecord(SQLModel, table=True):
    __tablename__ = "countries"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class DirectorRecord(SQLModel, table=True):
    __tablename__ = "directors"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class ActorRecord(SQLModel, table=True):
    __tablename__ = "actors"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class YearRecord(SQLModel, table=True):
    """Distinct release years referenced by movies."""

    __tablename__ = "years"

    id: str = Field(default_factory=_new_id, primary_key=True)
    year: int = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    deleted_at: datetime | None = Field(default=None, index=True)


class MovieGenreLink(SQLModel, table=True):
    __tablename__ = "movie_genres"

    movie_id: str = Field(foreign_key="movies.id", primary_key=True)
    genre_id: str = Field(foreign_key="genres.id", primary_key=True)


class MovieCountryLink(SQLModel, table=True):
    __tablename__ = "movie_countries"

    movie_id: str = Field(foreign_key="movies.id", primary_key=True)
    country_id: str = Field(foreign_key="countries.id", primary_key=True)


class MovieDirectorLink(SQLModel, table=True):
    __tablename__ = "movie_directors"

    movie_id: str = Field(foreign_key="movies.id", primary_key=True)
    director_id: str = Field(foreign_key="directors.id", primary_key=True)


class MovieActorLink(SQLModel, table=True):
    __tablename__ = "movie_actors"

    movie_id: str = Field(foreign_key="movies.id", primary_key=True)
    actor_id: str = Field(foreign_key="actors.id", primary_key=True)
