"""Tests for reconciling remote catalog movies into the local database."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

import httpx
import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from backend.admin_api.db import create_engine_from_settings, init_database
from backend.admin_api.models import (
    ActorRecord,
    EpisodeRecord,
    GenreRecord,
    MovieActorLink,
    MovieCountryLink,
    MovieDirectorLink,
    MovieGenreLink,
    MovieRecord,
    YearRecord,
)
from backend.admin_api.schemas import CrawlOptions
from backend.admin_api.services.catalog_client import CatalogClient, CatalogClientError
from backend.admin_api.services.synchronizer import CatalogSynchronizer, CrawlValidationError
from backend.admin_api.settings import AdminSettings
from backend.admin_api.stores.crawl_log_store import CrawlLogStore

from .conftest import CATALOG_BASE


@pytest.fixture()
def engine(tmp_path: Path):
    settings = AdminSettings(database_url=f"sqlite:///{tmp_path / 'admin.db'}", redis_url="fakeredis://")
    engine = create_engine_from_settings(settings)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def make_synchronizer(engine, fake_catalog):
    clients: list[CatalogClient] = []

    def _factory(**kwargs) -> CatalogSynchronizer:
        options = CrawlOptions(**kwargs.pop("options", {}))
        client = CatalogClient(CATALOG_BASE, transport=httpx.MockTransport(fake_catalog.handler))
        clients.append(client)
        return CatalogSynchronizer(engine, client, CrawlLogStore(engine), options, **kwargs)

    yield _factory
    for client in clients:
        client.close()


def _count(engine, model, *conditions) -> int:
    with Session(engine) as session:
        statement = select(func.count()).select_from(model)
        for condition in conditions:
            statement = statement.where(condition)
        return session.exec(statement).one()


def _movie(engine, slug: str) -> MovieRecord:
    with Session(engine) as session:
        return session.exec(select(MovieRecord).where(MovieRecord.slug == slug)).one()


def test_sync_one_inserts_movie_with_relations(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", episodes=5)

    result = make_synchronizer().sync_one("squid-game")

    assert result.success is True
    assert result.updated is False
    movie = _movie(engine, "squid-game")
    assert result.movie_id == movie.id
    assert movie.name == "Squid Game"
    assert movie.year == 2024
    assert movie.episode_total == "16"
    assert movie.poster_url == "https://img.test/squid-game-poster.jpg"

    assert _count(engine, MovieGenreLink, MovieGenreLink.movie_id == movie.id) == 1
    assert _count(engine, MovieCountryLink, MovieCountryLink.movie_id == movie.id) == 1
    assert _count(engine, MovieDirectorLink, MovieDirectorLink.movie_id == movie.id) == 1
    assert _count(engine, MovieActorLink, MovieActorLink.movie_id == movie.id) == 2
    assert _count(engine, YearRecord, YearRecord.year == 2024) == 1

    with Session(engine) as session:
        actor_slugs = sorted(session.exec(select(ActorRecord.slug)).all())
        episodes = session.exec(
            select(EpisodeRecord).where(EpisodeRecord.movie_id == movie.id).order_by(EpisodeRecord.name)
        ).all()
    assert actor_slugs == ["lee-byung-hun", "song-kang-ho"]
    assert len(episodes) == 5
    assert episodes[0].server_name == "#Vietsub 1"
    assert episodes[0].link_m3u8 == "https://stream.test/squid-game/0/1/index.m3u8"
    assert episodes[0].filename is None


def test_sync_one_twice_updates_in_place_without_duplicates(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")
    synchronizer = make_synchronizer()
    first = synchronizer.sync_one("squid-game")

    fake_catalog.add_movie("squid-game", name="Trò Chơi Con Mực")
    second = synchronizer.sync_one("squid-game")

    assert second.success is True
    assert second.updated is True
    assert second.movie_id == first.movie_id
    assert _count(engine, MovieRecord) == 1
    assert _movie(engine, "squid-game").name == "Trò Chơi Con Mực"
    assert _count(engine, GenreRecord) == 1
    assert _count(engine, ActorRecord) == 2
    assert _count(engine, YearRecord) == 1
    assert _count(engine, MovieGenreLink) == 1
    assert _count(engine, MovieActorLink) == 2


def test_sync_one_shares_lookup_rows_between_movies(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("movie-a", actors=["Song Kang-ho"])
    fake_catalog.add_movie("movie-b", actors=["Song Kang-ho", "Bae Doona"])
    synchronizer = make_synchronizer()

    synchronizer.sync_one("movie-a")
    synchronizer.sync_one("movie-b")

    assert _count(engine, GenreRecord) == 1
    assert _count(engine, ActorRecord) == 2
    assert _count(engine, MovieActorLink) == 3
    assert _count(engine, MovieGenreLink) == 2


def _episode_ids(engine, movie_id: str) -> set[str]:
    with Session(engine) as session:
        return set(session.exec(select(EpisodeRecord.id).where(EpisodeRecord.movie_id == movie_id)).all())


def test_resync_replaces_the_episode_set(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", episodes=5)
    synchronizer = make_synchronizer()
    synchronizer.sync_one("squid-game")
    movie_id = _movie(engine, "squid-game").id
    before = _episode_ids(engine, movie_id)
    assert len(before) == 5

    fake_catalog.add_movie("squid-game", episodes=3)
    result = synchronizer.sync_one("squid-game")

    assert result.updated is True
    after = _episode_ids(engine, movie_id)
    assert len(after) == 3
    assert before.isdisjoint(after)
    assert _count(engine, EpisodeRecord, EpisodeRecord.id.in_(before)) == 0
    with Session(engine) as session:
        slugs = session.exec(
            select(EpisodeRecord.slug).where(EpisodeRecord.movie_id == movie_id).order_by(EpisodeRecord.slug)
        ).all()
    assert slugs == ["tap-01", "tap-02", "tap-03"]


def test_broken_item_callback_does_not_fail_the_sync(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.pages = {1: ["movie-a", "movie-b"]}
    fake_catalog.add_movie("movie-a")
    fake_catalog.add_movie("movie-b")
    seen: list[str] = []

    def _explode(result) -> None:
        seen.append(result.slug)
        raise RuntimeError("listener down")

    synchronizer = make_synchronizer(on_item=_explode)
    single = synchronizer.sync_one("movie-a")
    summary = synchronizer.sync_page_range(1, 1)
    bulk = synchronizer.sync_url_list("not a url\n/phim/movie-b")

    assert single.success is True
    assert (summary.added, summary.updated, summary.failed) == (1, 1, 0)
    assert (bulk.updated, bulk.failed) == (1, 1)
    assert seen == ["movie-a", "movie-a", "movie-b", "not a url", "movie-b"]
    assert _count(engine, MovieRecord) == 2


def test_multiple_servers_keep_their_names(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", episodes=2, servers=2)

    make_synchronizer().sync_one("squid-game")

    with Session(engine) as session:
        names = sorted(set(session.exec(select(EpisodeRecord.server_name)).all()))
    assert names == ["#Vietsub 1", "#Vietsub 2"]
    assert _count(engine, EpisodeRecord) == 4


def test_empty_server_list_keeps_existing_episodes(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", episodes=4)
    synchronizer = make_synchronizer()
    synchronizer.sync_one("squid-game")

    fake_catalog.movies["squid-game"]["episodes"] = []
    result = synchronizer.sync_one("squid-game")

    assert result.success is True
    assert _count(engine, EpisodeRecord) == 4


def test_reencode_images_stores_null_image_urls(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")

    make_synchronizer(options={"reencode_images": True}).sync_one("squid-game")

    movie = _movie(engine, "squid-game")
    assert movie.poster_url is None
    assert movie.thumb_url is None


def test_skip_options_leave_relations_untouched(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")
    make_synchronizer().sync_one("squid-game")
    fake_catalog.add_movie("squid-game", episodes=1, actors=["Someone New"])

    result = make_synchronizer(
        options={"skip_genres": True, "skip_actors": True, "skip_episodes": True}
    ).sync_one("squid-game")

    assert result.success is True
    assert _count(engine, EpisodeRecord) == 3
    assert _count(engine, ActorRecord) == 2


def test_skip_options_on_fresh_insert(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")

    make_synchronizer(
        options={
            "skip_genres": True,
            "skip_countries": True,
            "skip_directors": True,
            "skip_actors": True,
            "skip_episodes": True,
        }
    ).sync_one("squid-game")

    assert _count(engine, MovieRecord) == 1
    for model in (MovieGenreLink, MovieCountryLink, MovieDirectorLink, MovieActorLink, EpisodeRecord):
        assert _count(engine, model) == 0
    assert _count(engine, YearRecord) == 1


def test_unknown_year_is_not_recorded(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", year=0)

    make_synchronizer().sync_one("squid-game")

    assert _movie(engine, "squid-game").year is None
    assert _count(engine, YearRecord) == 0


def test_blank_people_names_are_ignored(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game", directors=["", "  "], actors=["Đặng Thu Thảo", ""])

    make_synchronizer().sync_one("squid-game")

    with Session(engine) as session:
        actors = session.exec(select(ActorRecord)).all()
    assert _count(engine, MovieDirectorLink) == 0
    assert [(actor.name, actor.slug) for actor in actors] == [("Đặng Thu Thảo", "dang-thu-thao")]


def test_missing_movie_returns_failure(engine, fake_catalog, make_synchronizer) -> None:
    seen = []

    result = make_synchronizer(on_item=seen.append).sync_one("does-not-exist")

    assert result.success is False
    assert result.message == "Movie not found: does-not-exist"
    assert seen == [result]
    assert _count(engine, MovieRecord) == 0


def test_catalog_error_is_reported_as_failure(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.failing_paths.add("/phim/squid-game")

    result = make_synchronizer().sync_one("squid-game")

    assert result.success is False
    assert "HTTP 500" in (result.message or "")
    assert _count(engine, MovieRecord) == 0


def test_failed_reconcile_rolls_back_the_whole_movie(engine, fake_catalog, make_synchronizer, monkeypatch) -> None:
    fake_catalog.add_movie("squid-game")

    def _explode(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr("backend.admin_api.services.synchronizer.replace_episodes", _explode)
    result = make_synchronizer().sync_one("squid-game")

    assert result.success is False
    assert result.message == "disk full"
    assert _count(engine, MovieRecord) == 0
    assert _count(engine, GenreRecord) == 0
    assert _count(engine, MovieActorLink) == 0


def test_trashed_movie_is_updated_and_stays_in_trash(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")
    synchronizer = make_synchronizer()
    synchronizer.sync_one("squid-game")
    deleted_at = datetime(2024, 1, 1)
    with Session(engine) as session:
        movie = session.exec(select(MovieRecord)).one()
        movie.deleted_at = deleted_at
        session.add(movie)
        session.commit()

    fake_catalog.add_movie("squid-game", name="Renamed")
    result = synchronizer.sync_one("squid-game")

    assert result.updated is True
    movie = _movie(engine, "squid-game")
    assert movie.name == "Renamed"
    assert movie.deleted_at == deleted_at


@pytest.mark.parametrize(
    ("from_page", "to_page"),
    [(0, 1), (1, 0), (3, 2), (1.5, 2), (True, 2), ("1", 2)],
)
def test_page_range_rejects_invalid_input_without_side_effects(
    engine, fake_catalog, make_synchronizer, from_page, to_page
) -> None:
    with pytest.raises(CrawlValidationError):
        make_synchronizer().sync_page_range(from_page, to_page)

    assert fake_catalog.requests == []
    assert CrawlLogStore(engine).list() == []


def test_page_range_single_page_processes_that_page(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.pages = {1: ["movie-a", "movie-b"], 2: ["movie-c"]}
    for slug in ("movie-a", "movie-b", "movie-c"):
        fake_catalog.add_movie(slug)
    progress: list[float] = []
    ticks = iter([100.0, 112.4])

    summary = make_synchronizer(
        on_progress=lambda fraction, _message: progress.append(fraction),
        clock=lambda: next(ticks),
    ).sync_page_range(1, 1)

    listing_calls = [url for url in fake_catalog.requests if url.path == "/danh-sach/phim-moi-cap-nhat"]
    assert [url.params["page"] for url in listing_calls] == ["1"]
    assert (summary.added, summary.updated, summary.failed) == (2, 0, 0)
    assert summary.duration == "12s"
    assert progress == sorted(progress)
    assert progress[-1] == 1.0

    logs = CrawlLogStore(engine).list()
    assert len(logs) == 1
    assert logs[0].type == "Crawl pages 1 -> 1"
    assert logs[0].status == "success"
    assert logs[0].movies_added == 2
    assert logs[0].duration == "12s"
    assert logs[0].message is None
    assert logs[0].id == summary.log_id


def test_page_range_skips_empty_pages_and_counts_updates(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.pages = {1: [], 2: ["movie-a", "missing"]}
    fake_catalog.add_movie("movie-a")
    synchronizer = make_synchronizer()
    synchronizer.sync_one("movie-a")

    summary = synchronizer.sync_page_range(1, 2)

    assert (summary.added, summary.updated, summary.failed) == (0, 1, 1)
    log = CrawlLogStore(engine).get(summary.log_id)
    assert log is not None
    assert log.status == "success"
    assert log.movies_updated == 1
    assert log.message == "1 movies failed"


def test_page_range_listing_failure_marks_log_error(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.failing_paths.add("/danh-sach/phim-moi-cap-nhat")

    with pytest.raises(CatalogClientError):
        make_synchronizer().sync_page_range(1, 3)

    logs = CrawlLogStore(engine).list()
    assert len(logs) == 1
    assert logs[0].status == "error"
    assert logs[0].finished_at is not None
    assert "HTTP 500" in (logs[0].message or "")


def test_url_list_counts_added_updated_and_invalid_lines(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("movie-a")
    fake_catalog.add_movie("movie-b")
    synchronizer = make_synchronizer()
    synchronizer.sync_one("movie-b")
    items = []
    synchronizer = make_synchronizer(on_item=items.append)

    summary = synchronizer.sync_url_list(
        "https://phimapi.com/phim/movie-a\n\n  not a movie url  \nhttps://phimapi.com/phim/movie-b?ref=home\n"
    )

    assert summary.label == "Bulk crawl (3 movies)"
    assert (summary.added, summary.updated, summary.failed) == (1, 1, 1)
    assert summary.added + summary.updated + summary.failed == 3
    assert [item.success for item in items] == [True, False, True]

    logs = CrawlLogStore(engine).list()
    assert len(logs) == 1
    assert logs[0].status == "success"
    assert (logs[0].movies_added, logs[0].movies_updated) == (1, 1)
    assert logs[0].message == "1 movies failed"


def test_url_list_rejects_blank_input(engine, fake_catalog, make_synchronizer) -> None:
    with pytest.raises(CrawlValidationError):
        make_synchronizer().sync_url_list("  \n\n   ")

    assert fake_catalog.requests == []
    assert CrawlLogStore(engine).list() == []


def test_single_crawl_writes_one_terminal_log(engine, fake_catalog, make_synchronizer) -> None:
    fake_catalog.add_movie("squid-game")
    synchronizer = make_synchronizer()

    first = synchronizer.sync_single("https://phimapi.com/phim/squid-game")
    second = synchronizer.sync_single("https://phimapi.com/phim/squid-game")
    missing = synchronizer.sync_single("https://phimapi.com/phim/nowhere")

    assert first.success and not first.updated
    assert second.success and second.updated
    assert missing.success is False

    store = CrawlLogStore(engine)
    logs = {log.id: log for log in store.list()}
    assert len(logs) == 3
    assert logs[first.log_id].type == "Crawl movie: squid-game"
    assert logs[first.log_id].movies_added == 1
    assert logs[second.log_id].movies_updated == 1
    assert logs[missing.log_id].status == "error"
    assert logs[missing.log_id].message == "Movie not found: nowhere"
    assert all(log.status != "running" for log in logs.values())


def test_single_crawl_rejects_url_without_slug(engine, fake_catalog, make_synchronizer) -> None:
    with pytest.raises(CrawlValidationError):
        make_synchronizer().sync_single("https://phimapi.com/danh-sach")

    assert fake_catalog.requests == []
    assert CrawlLogStore(engine).list() == []
