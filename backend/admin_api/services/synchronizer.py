"""Reconcile movies from the remote catalog into the local database.

Every public entry point processes movies strictly one after another. A single
movie is reconciled inside one database transaction: the movie row, its
genre/country/director/actor/year links and its episode set either all land
or none do. Per-movie failures are reported as :class:`SyncResult` values and
never abort a batch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..db import session_scope
from ..models import MovieRecord
from ..schemas import CrawlOptions
from ..stores.crawl_log_store import CrawlLogStore
from ..stores.movie_store import find_movie_by_slug, replace_episodes
from ..stores.taxonomy_store import ensure_link, upsert_term, upsert_year
from ..utils.slugs import extract_movie_slug, slugify
from .catalog_client import CatalogClient, CatalogMovieDetail

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]
ItemCallback = Callable[["SyncResult"], None]

_MOVIE_FIELDS = (
    "name",
    "origin_name",
    "content",
    "type",
    "status",
    "poster_url",
    "thumb_url",
    "trailer_url",
    "time",
    "episode_current",
    "episode_total",
    "quality",
    "lang",
    "year",
)


class CrawlValidationError(ValueError):
    """Raised for bad crawl input before any network or database call."""


@dataclass(slots=True)
class SyncResult:
    """Outcome of reconciling one remote movie."""

    success: bool
    slug: str
    updated: bool = False
    movie_id: str | None = None
    message: str | None = None
    log_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class CrawlSummary:
    """Aggregated counts for a batch crawl and the log row that records them."""

    log_id: str
    label: str
    added: int = 0
    updated: int = 0
    failed: int = 0
    duration: str = "0s"
    message: str | None = None

    def count(self, result: SyncResult) -> None:
        if not result.success:
            self.failed += 1
        elif result.updated:
            self.updated += 1
        else:
            self.added += 1

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_page_range(from_page: Any, to_page: Any) -> tuple[int, int]:
    """Return the range as ints or raise :class:`CrawlValidationError`."""

    for value in (from_page, to_page):
        if isinstance(value, bool) or not isinstance(value, int):
            raise CrawlValidationError("Page numbers must be integers")
    if from_page < 1 or to_page < 1:
        raise CrawlValidationError("Page numbers must be positive")
    if from_page > to_page:
        raise CrawlValidationError(f"Invalid page range: {from_page} > {to_page}")
    return from_page, to_page


def split_url_lines(urls: str | Iterable[str]) -> list[str]:
    """Split bulk input into trimmed, non-blank lines."""

    lines = urls.splitlines() if isinstance(urls, str) else list(urls)
    cleaned = [line.strip() for line in lines if line and line.strip()]
    if not cleaned:
        raise CrawlValidationError("At least one movie URL is required")
    return cleaned


def require_movie_slug(url: str) -> str:
    """Extract the movie slug from ``url`` or raise :class:`CrawlValidationError`."""

    if not url or not url.strip():
        raise CrawlValidationError("Movie URL is required")
    slug = extract_movie_slug(url)
    if slug is None:
        raise CrawlValidationError(
            "Invalid movie URL, expected something like https://phimapi.com/phim/<slug>"
        )
    return slug


def _format_duration(seconds: float) -> str:
    return f"{round(seconds)}s"


def _failure_message(failed: int) -> str | None:
    return f"{failed} movies failed" if failed else None


class CatalogSynchronizer:
    """Pull movies from a :class:`CatalogClient` and upsert them locally."""

    def __init__(
        self,
        engine: Engine,
        client: CatalogClient,
        crawl_logs: CrawlLogStore,
        options: CrawlOptions | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_item: ItemCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._client = client
        self._crawl_logs = crawl_logs
        self._options = options or CrawlOptions()
        self._on_progress = on_progress
        self._on_item = on_item
        self._clock = clock

    @property
    def options(self) -> CrawlOptions:
        return self._options

    # ------------------------------------------------------------------
    # Single movie

    def sync_one(self, remote_slug: str) -> SyncResult:
        """Fetch ``remote_slug`` and insert or update it with all its relations."""

        try:
            detail = self._client.get_movie(remote_slug)
            if detail is None:
                result = SyncResult(
                    success=False, slug=remote_slug, message=f"Movie not found: {remote_slug}"
                )
            else:
                with session_scope(self._engine) as session:
                    movie_id, updated = self._reconcile(session, detail)
                result = SyncResult(
                    success=True, slug=detail.movie.slug, updated=updated, movie_id=movie_id
                )
        except Exception as exc:
            logger.warning("Failed to sync movie %s: %s", remote_slug, exc)
            result = SyncResult(success=False, slug=remote_slug, message=str(exc) or type(exc).__name__)

        self._notify(result)
        return result

    def _reconcile(self, session: Session, detail: CatalogMovieDetail) -> tuple[str, bool]:
        movie = detail.movie
        fields = {name: getattr(movie, name) for name in _MOVIE_FIELDS}
        if self._options.reencode_images:
            fields["poster_url"] = None
            fields["thumb_url"] = None

        record = find_movie_by_slug(session, movie.slug)
        updated = record is not None
        if record is None:
            record = MovieRecord(slug=movie.slug, **fields)
        else:
            for key, value in fields.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
        session.add(record)
        session.flush()
        movie_id = record.id

        if not self._options.skip_genres:
            for term in movie.category:
                self._link_term(session, "genres", movie_id, term.name, term.slug)

        if not self._options.skip_countries:
            for term in movie.country:
                self._link_term(session, "countries", movie_id, term.name, term.slug)

        if movie.year:
            upsert_year(session, movie.year)

        if not self._options.skip_directors:
            for name in movie.director:
                self._link_person(session, "directors", movie_id, name)

        if not self._options.skip_actors:
            for name in movie.actor:
                self._link_person(session, "actors", movie_id, name)

        # An empty server list means the catalog has nothing to offer yet; keep what we have.
        if not self._options.skip_episodes and detail.episodes:
            rows = [
                {
                    "server_name": server.server_name,
                    "name": episode.name,
                    "slug": episode.slug,
                    "filename": episode.filename or None,
                    "link_embed": episode.link_embed or None,
                    "link_m3u8": episode.link_m3u8 or None,
                }
                for server in detail.episodes
                for episode in server.server_data
            ]
            replace_episodes(session, movie_id, rows)

        logger.info("%s movie %s", "Updated" if updated else "Inserted", movie.slug)
        return movie_id, updated

    @staticmethod
    def _link_term(session: Session, kind: str, movie_id: str, name: str, slug: str) -> None:
        slug = slug or slugify(name)
        if not slug:
            return
        entity_id = upsert_term(session, kind, name=name, slug=slug)
        ensure_link(session, kind, movie_id, entity_id)

    @staticmethod
    def _link_person(session: Session, kind: str, movie_id: str, name: str) -> None:
        if not name or not name.strip():
            return
        slug = slugify(name)
        if not slug:
            return
        entity_id = upsert_term(session, kind, name=name.strip(), slug=slug)
        ensure_link(session, kind, movie_id, entity_id)

    # ------------------------------------------------------------------
    # Invocation modes

    def sync_single(self, url: str) -> SyncResult:
        """Crawl one movie URL and write exactly one terminal crawl log."""

        slug = require_movie_slug(url)
        started = self._clock()
        self._report(0.0, f"Crawling movie {slug}")
        result = self.sync_one(slug)
        succeeded = result.success
        log = self._crawl_logs.record(
            f"Crawl movie: {slug}",
            status="success" if succeeded else "error",
            movies_added=1 if succeeded and not result.updated else 0,
            movies_updated=1 if succeeded and result.updated else 0,
            duration=_format_duration(self._clock() - started),
            message=result.message,
        )
        result.log_id = log.id
        self._report(1.0, f"Finished movie {slug}")
        return result

    def sync_page_range(self, from_page: int, to_page: int) -> CrawlSummary:
        """Crawl every movie listed on pages ``from_page..to_page`` inclusive."""

        from_page, to_page = validate_page_range(from_page, to_page)
        total_pages = to_page - from_page + 1
        label = f"Crawl pages {from_page} -> {to_page}"
        return self._run_batch(label, lambda summary: self._crawl_pages(summary, from_page, to_page, total_pages))

    def _crawl_pages(self, summary: CrawlSummary, from_page: int, to_page: int, total_pages: int) -> None:
        for page in range(from_page, to_page + 1):
            completed_pages = page - from_page
            self._report(completed_pages / total_pages, f"Fetching listing page {page}/{to_page}")
            listing = self._client.list_movies(page)
            items = listing.items
            if not items:
                logger.info("Listing page %s is empty, skipping", page)
                self._report((completed_pages + 1) / total_pages, f"Page {page} is empty")
                continue

            for index, item in enumerate(items, start=1):
                summary.count(self.sync_one(item.slug))
                fraction = (completed_pages + index / len(items)) / total_pages
                self._report(fraction, f"Page {page}: {index}/{len(items)} {item.name or item.slug}")

    def sync_url_list(self, urls: str | Iterable[str]) -> CrawlSummary:
        """Crawl a newline separated list of movie URLs."""

        lines = split_url_lines(urls)
        label = f"Bulk crawl ({len(lines)} movies)"
        return self._run_batch(label, lambda summary: self._crawl_urls(summary, lines))

    def _crawl_urls(self, summary: CrawlSummary, lines: list[str]) -> None:
        total = len(lines)
        for index, line in enumerate(lines, start=1):
            slug = extract_movie_slug(line)
            if slug is None:
                summary.failed += 1
                self._notify(SyncResult(success=False, slug=line, message=f"Invalid movie URL: {line}"))
            else:
                summary.count(self.sync_one(slug))
            self._report(index / total, f"Crawled {index}/{total}: {slug or line}")

    def _run_batch(self, label: str, body: Callable[[CrawlSummary], None]) -> CrawlSummary:
        started = self._clock()
        log = self._crawl_logs.start(label)
        summary = CrawlSummary(log_id=log.id, label=label)
        try:
            body(summary)
        except Exception as exc:
            summary.duration = _format_duration(self._clock() - started)
            summary.message = str(exc) or type(exc).__name__
            logger.error("Crawl %r aborted: %s", label, summary.message)
            self._crawl_logs.finish(
                log.id,
                status="error",
                movies_added=summary.added,
                movies_updated=summary.updated,
                duration=summary.duration,
                message=summary.message,
            )
            raise

        summary.duration = _format_duration(self._clock() - started)
        summary.message = _failure_message(summary.failed)
        self._crawl_logs.finish(
            log.id,
            status="success",
            movies_added=summary.added,
            movies_updated=summary.updated,
            duration=summary.duration,
            message=summary.message,
        )
        logger.info(
            "Crawl %r finished: added=%s updated=%s failed=%s",
            label,
            summary.added,
            summary.updated,
            summary.failed,
        )
        return summary

    def _notify(self, result: SyncResult) -> None:
        # a broken listener must not turn a saved movie into a failure
        if self._on_item is None:
            return
        try:
            self._on_item(result)
        except Exception:
            logger.exception("Item callback failed for %s", result.slug)

    def _report(self, fraction: float, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(min(max(fraction, 0.0), 1.0), message)
