"""Tests for the Typer-based admin CLI."""
from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from rq.worker import SimpleWorker
from typer.testing import CliRunner

from backend.admin_api import create_app
from backend.admin_api.services.catalog_client import CatalogClient
from backend.admin_api.settings import AdminSettings
from backend.admin_cli import client as client_module
from backend.admin_cli.app import app as cli_app

from .conftest import CATALOG_BASE

cli_app_module = importlib.import_module("backend.admin_cli.app")


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_client(tmp_path: Path, fake_catalog, monkeypatch) -> TestClient:
    """Provide a TestClient and patch the CLI HTTP client factory."""

    def _build(settings: AdminSettings) -> CatalogClient:
        return CatalogClient(CATALOG_BASE, transport=httpx.MockTransport(fake_catalog.handler))

    monkeypatch.setattr("backend.admin_api.services.tasks.build_catalog_client", _build)
    monkeypatch.setattr("backend.admin_api.state.build_catalog_client", _build)

    settings = AdminSettings(
        database_url=f"sqlite:///{tmp_path / 'admin.db'}",
        redis_url="fakeredis://",
    )
    test_client = TestClient(create_app(settings=settings))

    def _factory(base_url: str, *, timeout: float = 30.0, transport: Any = None):  # type: ignore[override]
        return test_client

    monkeypatch.setattr(client_module, "create_client", _factory)
    monkeypatch.setattr(cli_app_module, "create_client", _factory)
    return test_client


def drain_jobs(client: TestClient) -> None:
    """Process queued jobs for CLI-oriented tests."""

    app_state = client.app.state.app_state
    worker = SimpleWorker([app_state.job_queue.queue], connection=app_state.job_queue.connection)
    worker.work(burst=True)


def test_cli_health_command_outputs_status(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    assert "\"status\": \"ok\"" in result.output


def test_cli_config_update_modifies_defaults(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["config", "update", "--skip-actors", "--reencode-images"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["skip_actors"] is True
    assert payload["reencode_images"] is True
    assert payload["skip_genres"] is False


def test_cli_config_update_requires_a_flag(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["config", "update"])

    assert result.exit_code == 1
    assert "No updates supplied." in result.output


def test_cli_crawl_pages_enqueues_job(runner: CliRunner, cli_client: TestClient, fake_catalog) -> None:
    fake_catalog.pages = {2: ["movie-a"]}
    fake_catalog.add_movie("movie-a")

    result = runner.invoke(cli_app, ["crawl", "pages", "2", "2", "--skip-episodes"])

    assert result.exit_code == 0
    job = json.loads(result.output)
    assert job["type"] == "crawl_pages"
    assert job["payload"]["options"]["skip_episodes"] is True

    drain_jobs(cli_client)
    logs = runner.invoke(cli_app, ["crawl", "logs"])
    assert logs.exit_code == 0
    entries = json.loads(logs.output)
    assert entries[0]["type"] == "Crawl pages 2 -> 2"
    assert entries[0]["movies_added"] == 1


def test_cli_crawl_pages_reports_invalid_range(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["crawl", "pages", "5", "1"])

    assert result.exit_code == 1
    assert "Invalid page range" in result.output


def test_cli_crawl_urls_reads_file(
    runner: CliRunner, cli_client: TestClient, fake_catalog, tmp_path: Path
) -> None:
    fake_catalog.add_movie("movie-a")
    url_file = tmp_path / "urls.txt"
    url_file.write_text("https://phimapi.com/phim/movie-a\n\n", encoding="utf-8")

    result = runner.invoke(cli_app, ["crawl", "urls", "--file", str(url_file)])

    assert result.exit_code == 0
    job = json.loads(result.output)
    drain_jobs(cli_client)
    shown = runner.invoke(cli_app, ["jobs", "show", job["id"]])
    assert shown.exit_code == 0
    final = json.loads(shown.output)
    assert final["status"] == "completed"
    assert final["result"]["added"] == 1


def test_cli_crawl_urls_requires_input(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["crawl", "urls"])

    assert result.exit_code == 1
    assert "No URLs supplied." in result.output


def test_cli_movies_and_trash_flow(runner: CliRunner, cli_client: TestClient, fake_catalog) -> None:
    fake_catalog.add_movie("squid-game")
    job = json.loads(runner.invoke(cli_app, ["crawl", "movie", "https://phimapi.com/phim/squid-game"]).output)
    drain_jobs(cli_client)
    movie_id = cli_client.get(f"/jobs/{job['id']}").json()["result"]["movie_id"]

    listed = runner.invoke(cli_app, ["movies", "list", "--query", "squid"])
    assert listed.exit_code == 0
    assert json.loads(listed.output)["total"] == 1

    shown = runner.invoke(cli_app, ["movies", "show", movie_id])
    assert json.loads(shown.output)["episode_count"] == 3

    episodes = runner.invoke(cli_app, ["movies", "episodes", movie_id])
    assert len(json.loads(episodes.output)) == 3

    deleted = runner.invoke(cli_app, ["movies", "delete", movie_id])
    assert deleted.exit_code == 0
    assert runner.invoke(cli_app, ["movies", "show", movie_id]).exit_code == 1

    trash = json.loads(runner.invoke(cli_app, ["trash", "list", "movies"]).output)
    assert [item["id"] for item in trash] == [movie_id]

    restored = runner.invoke(cli_app, ["trash", "restore", "movies", movie_id])
    assert json.loads(restored.output) == {"kind": "movies", "affected": 1}


def test_cli_trash_empty_requires_confirmation(runner: CliRunner, cli_client: TestClient) -> None:
    aborted = runner.invoke(cli_app, ["trash", "empty", "movies"], input="n\n")
    assert aborted.exit_code == 1

    confirmed = runner.invoke(cli_app, ["trash", "empty", "movies", "--yes"])
    assert confirmed.exit_code == 0
    assert json.loads(confirmed.output) == {"kind": "movies", "affected": 0}


def test_cli_taxonomy_add_and_conflict(runner: CliRunner, cli_client: TestClient) -> None:
    created = runner.invoke(cli_app, ["taxonomy", "add", "genres", "Hành Động"])
    assert created.exit_code == 0
    assert json.loads(created.output)["slug"] == "hanh-dong"

    duplicate = runner.invoke(cli_app, ["taxonomy", "add", "genres", "Hanh Dong"])
    assert duplicate.exit_code == 1
    assert "already exists" in duplicate.output


def test_cli_jobs_show_handles_missing_job(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["jobs", "show", "missing"])

    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_cli_jobs_cancel_stops_queued_crawl(runner: CliRunner, cli_client: TestClient, fake_catalog) -> None:
    fake_catalog.add_movie("movie-a")
    job = json.loads(runner.invoke(cli_app, ["crawl", "movie", "https://phimapi.com/phim/movie-a"]).output)

    result = runner.invoke(cli_app, ["jobs", "cancel", job["id"], "--reason", "typo"])

    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "cancelled"
    drain_jobs(cli_client)
    assert fake_catalog.requests == []
    assert json.loads(runner.invoke(cli_app, ["movies", "list"]).output)["total"] == 0

    again = runner.invoke(cli_app, ["jobs", "cancel", job["id"]])
    assert again.exit_code == 1
    assert "Job already cancelled" in again.output


def test_cli_catalog_status_reports_online(runner: CliRunner, cli_client: TestClient) -> None:
    result = runner.invoke(cli_app, ["catalog", "status"])

    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "online"
