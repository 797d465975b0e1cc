"""Pydantic models exposed by the Phim Admin API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueueHealthStatus(BaseModel):
    """Represents Redis queue connectivity status."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the queue is unavailable."
    )


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    queue: QueueHealthStatus = Field(
        default_factory=QueueHealthStatus,
        description="Health information for the background job queue.",
    )


class CrawlOptions(BaseModel):
    """Flags controlling which parts of a movie the synchronizer reconciles."""

    skip_genres: bool = Field(default=False, description="Do not link genres.")
    skip_countries: bool = Field(default=False, description="Do not link countries.")
    skip_directors: bool = Field(default=False, description="Do not link directors.")
    skip_actors: bool = Field(default=False, description="Do not link actors.")
    skip_episodes: bool = Field(default=False, description="Leave the episode set untouched.")
    reencode_images: bool = Field(
        default=False,
        description="Store poster and thumb URLs as null so the image pipeline can produce local copies.",
    )


class ConfigModel(CrawlOptions):
    """Represents the persisted crawl defaults."""

    model_config = ConfigDict(from_attributes=True)


class ConfigUpdate(BaseModel):
    """Subset of crawl defaults to change, also used as a per-request override."""

    skip_genres: bool | None = Field(default=None)
    skip_countries: bool | None = Field(default=None)
    skip_directors: bool | None = Field(default=None)
    skip_actors: bool | None = Field(default=None)
    skip_episodes: bool | None = Field(default=None)
    reencode_images: bool | None = Field(default=None)


class JobModel(BaseModel):
    """Represents a background job."""

    id: str
    type: str
    status: Literal["queued", "running", "completed", "failed", "cancelled"]
    progress: float = Field(ge=0, le=1)
    worker_id: str | None = Field(
        default=None, description="Identifier for the worker processing the job."
    )
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the runner."
    )
    result: dict[str, Any] | None = Field(
        default=None, description="Summary returned by the job once it finishes."
    )
    created_at: datetime = Field(
        description="Timestamp when the job record was created."
    )
    updated_at: datetime = Field(
        description="Timestamp when the job record was last updated."
    )
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    duration_seconds: float | None = Field(
        default=None,
        description="Execution duration calculated from started and finished timestamps.",
    )


class JobLogCreate(BaseModel):
    """Payload used to append a new job log entry."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Severity level of the log entry."
    )
    message: str = Field(..., description="Human-readable log message.")
    context: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured context payload for the log entry.",
    )


class JobLogModel(JobLogCreate):
    """Represents a persisted job log entry."""

    id: int
    job_id: str
    created_at: datetime


class JobCancelRequest(BaseModel):
    """Payload used when cancelling a job."""

    reason: str | None = Field(
        default=None, description="Optional reason recorded with the cancellation."
    )


class CrawlPagesRequest(BaseModel):
    """Crawl every movie listed on an inclusive range of remote pages."""

    from_page: int = Field(..., description="First listing page, starting at 1.")
    to_page: int = Field(..., description="Last listing page, inclusive.")
    options: ConfigUpdate | None = Field(
        default=None, description="Overrides applied on top of the persisted crawl defaults."
    )


class CrawlUrlsRequest(BaseModel):
    """Crawl a newline separated list of movie URLs."""

    urls: str = Field(..., description="One movie URL per line; blank lines are ignored.")
    options: ConfigUpdate | None = Field(default=None)


class CrawlMovieRequest(BaseModel):
    """Crawl a single movie URL."""

    url: str = Field(..., description="Movie URL containing a /phim/<slug> segment.")
    options: ConfigUpdate | None = Field(default=None)


class CrawlLogModel(BaseModel):
    """Run-level record written for every crawl invocation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    status: Literal["running", "success", "error"]
    movies_added: int = 0
    movies_updated: int = 0
    duration: str | None = None
    message: str | None = None
    created_at: datetime
    finished_at: datetime | None = None


class MovieBase(BaseModel):
    name: str
    origin_name: str | None = None
    content: str | None = None
    type: str | None = None
    status: str | None = None
    year: int | None = None
    quality: str | None = None
    lang: str | None = None
    time: str | None = None
    poster_url: str | None = None
    thumb_url: str | None = None
    trailer_url: str | None = None
    episode_current: str | None = None
    episode_total: str | None = None


class MovieCreate(MovieBase):
    """Payload for creating a movie by hand."""

    slug: str | None = Field(
        default=None, description="Unique slug; derived from the name when omitted."
    )


class MovieUpdate(BaseModel):
    """Partial update applied to a movie."""

    name: str | None = None
    slug: str | None = None
    origin_name: str | None = None
    content: str | None = None
    type: str | None = None
    status: str | None = None
    year: int | None = None
    quality: str | None = None
    lang: str | None = None
    time: str | None = None
    poster_url: str | None = None
    thumb_url: str | None = None
    trailer_url: str | None = None
    episode_current: str | None = None
    episode_total: str | None = None


class MovieModel(MovieBase):
    """Movie row exposed to the admin dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    created_at: datetime
    updated_at: datetime


class MovieDetailModel(MovieModel):
    """Movie with its linked taxonomy names and episode count."""

    genres: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    episode_count: int = 0


class MovieListModel(BaseModel):
    """Paginated list container for movie responses."""

    items: list[MovieModel]
    total: int
    page: int
    page_size: int


MovieSortOption = Literal[
    "updated_desc",
    "updated_asc",
    "name_asc",
    "name_desc",
    "year_desc",
    "year_asc",
]


EpisodeLinkType = Literal["m3u8", "embed", "mp4", "shortcode"]


class EpisodeModel(BaseModel):
    """Episode row exposed to the admin dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    movie_id: str
    server_name: str
    name: str
    slug: str | None = None
    link_m3u8: str | None = None
    link_embed: str | None = None
    filename: str | None = None


class EpisodeCreate(BaseModel):
    """Payload for adding an episode; the link type selects the populated field."""

    name: str
    slug: str | None = None
    server_name: str = Field(default="Server #1")
    link_type: EpisodeLinkType = Field(default="m3u8")
    link_value: str


class EpisodeUpdate(BaseModel):
    """Partial episode update; switching link type clears the other link fields."""

    name: str | None = None
    slug: str | None = None
    server_name: str | None = None
    link_type: EpisodeLinkType | None = None
    link_value: str | None = None

    @model_validator(mode="after")
    def _link_pair(self) -> "EpisodeUpdate":
        if (self.link_type is None) != (self.link_value is None):
            raise ValueError("link_type and link_value must be supplied together")
        return self


TaxonomyKind = Literal["genres", "countries", "directors", "actors", "years"]


class TaxonomyItemModel(BaseModel):
    """Lookup entity row; years use their value as both name and slug."""

    id: str
    name: str
    slug: str
    created_at: datetime


class TaxonomyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str | None = Field(default=None)


TrashKind = Literal["movies", "genres", "countries", "directors", "actors", "years"]


class TrashItemModel(BaseModel):
    """A soft-deleted row awaiting restore or purge."""

    id: str
    kind: TrashKind
    name: str
    deleted_at: datetime
    expires_at: datetime
    days_remaining: int


class TrashSelection(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class TrashActionResult(BaseModel):
    kind: TrashKind
    affected: int


class TrashSweepResult(BaseModel):
    """Rows purged by the retention sweep, per kind."""

    purged: dict[str, int] = Field(default_factory=dict)


class CatalogStatusModel(BaseModel):
    """Reachability of the remote catalog API."""

    status: Literal["online", "offline"]
    latency_ms: int = 0
    total_items: int | None = None
    checked_at: datetime


class CatalogTermModel(BaseModel):
    name: str
    slug: str


class DashboardMetricsModel(BaseModel):
    """Counters shown on the admin landing page."""

    movies: int
    episodes: int
    trashed_movies: int
    crawl_status_counts: dict[str, int] = Field(default_factory=dict)
    last_crawl_at: datetime | None = None
