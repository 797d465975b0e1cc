"""HTTP client for the remote movie catalog API."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class CatalogClientError(RuntimeError):
    """Raised when the remote catalog cannot be reached or returns garbage."""


class CatalogTerm(BaseModel):
    """Genre or country reference embedded in catalog payloads."""

    model_config = ConfigDict(extra="ignore")

    name: str
    slug: str


class CatalogEpisode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    slug: str | None = None
    filename: str | None = None
    link_embed: str | None = None
    link_m3u8: str | None = None


class CatalogServer(BaseModel):
    """A named mirror and the episodes it hosts."""

    model_config = ConfigDict(extra="ignore")

    server_name: str = "Server #1"
    server_data: list[CatalogEpisode] = Field(default_factory=list)


class CatalogMovie(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    slug: str
    origin_name: str | None = None
    content: str | None = None
    type: str | None = None
    status: str | None = None
    poster_url: str | None = None
    thumb_url: str | None = None
    trailer_url: str | None = None
    time: str | None = None
    episode_current: str | None = None
    episode_total: str | None = None
    quality: str | None = None
    lang: str | None = None
    year: int | None = None
    category: list[CatalogTerm] = Field(default_factory=list)
    country: list[CatalogTerm] = Field(default_factory=list)
    director: list[str] = Field(default_factory=list)
    actor: list[str] = Field(default_factory=list)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> Any:
        # The API sends 0 or "" for unknown years.
        if value in (None, "", 0, "0"):
            return None
        return value

    @field_validator("category", "country", "director", "actor", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return value or []

    @field_validator("episode_current", "episode_total", "time", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class CatalogMovieDetail(BaseModel):
    """Detail response: movie scalars plus the servers carrying its episodes."""

    model_config = ConfigDict(extra="ignore")

    movie: CatalogMovie
    episodes: list[CatalogServer] = Field(default_factory=list)

    @field_validator("episodes", mode="before")
    @classmethod
    def _null_episodes(cls, value: Any) -> Any:
        return value or []


class CatalogListItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    slug: str


class CatalogPagination(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_items: int | None = Field(default=None, alias="totalItems")
    total_pages: int | None = Field(default=None, alias="totalPages")
    current_page: int | None = Field(default=None, alias="currentPage")


class CatalogListing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[CatalogListItem] = Field(default_factory=list)
    pagination: CatalogPagination = Field(default_factory=CatalogPagination)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return value or []


class CatalogStatus(BaseModel):
    status: str
    latency_ms: int
    total_items: int | None
    checked_at: datetime


class CatalogClient:
    """Thin wrapper over the catalog endpoints used by the synchronizer."""

    LISTING_PATH = "danh-sach/phim-moi-cap-nhat"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def _build_url(self, path: str) -> str:
        normalized_base = self._base_url.rstrip("/") + "/"
        return urljoin(normalized_base, path)

    def _get_json(self, path: str, *, params: dict[str, Any] | None = None, allow_missing: bool = False) -> Any:
        url = self._build_url(path)
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise CatalogClientError(f"Failed to contact catalog: {exc}") from exc

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            raise CatalogClientError(f"Catalog responded with HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise CatalogClientError("Catalog returned invalid JSON") from exc

    def list_movies(self, page: int) -> CatalogListing:
        """Fetch one page of the recently-updated listing."""

        payload = self._get_json(self.LISTING_PATH, params={"page": page})
        if not isinstance(payload, dict):
            raise CatalogClientError("Catalog listing response must be an object")
        try:
            return CatalogListing.model_validate(payload)
        except ValidationError as exc:
            raise CatalogClientError(f"Unexpected listing payload: {exc}") from exc

    def get_movie(self, slug: str) -> CatalogMovieDetail | None:
        """Fetch the detail payload for ``slug``; ``None`` when the catalog has no such movie."""

        payload = self._get_json(f"phim/{slug}", allow_missing=True)
        if not isinstance(payload, dict) or not payload.get("movie"):
            logger.info("Catalog has no movie for slug %s", slug)
            return None
        try:
            return CatalogMovieDetail.model_validate(payload)
        except ValidationError as exc:
            raise CatalogClientError(f"Unexpected detail payload for {slug}: {exc}") from exc

    def list_categories(self) -> list[CatalogTerm]:
        return self._list_terms("the-loai")

    def list_countries(self) -> list[CatalogTerm]:
        return self._list_terms("quoc-gia")

    def _list_terms(self, path: str) -> list[CatalogTerm]:
        payload = self._get_json(path)
        if isinstance(payload, dict):
            payload = payload.get("items") or payload.get("data") or []
        if not isinstance(payload, list):
            raise CatalogClientError(f"Catalog {path} response must be a list")
        try:
            return [CatalogTerm.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise CatalogClientError(f"Unexpected {path} payload: {exc}") from exc

    def status(self) -> CatalogStatus:
        """Fetch the first listing page and report reachability and latency."""

        started = time.monotonic()
        try:
            listing = self.list_movies(1)
        except CatalogClientError as exc:
            logger.warning("Catalog status check failed: %s", exc)
            return CatalogStatus(
                status="offline", latency_ms=0, total_items=None, checked_at=datetime.utcnow()
            )
        latency_ms = int((time.monotonic() - started) * 1000)
        return CatalogStatus(
            status="online",
            latency_ms=latency_ms,
            total_items=listing.pagination.total_items,
            checked_at=datetime.utcnow(),
        )
