"""Command line interface for the Phim Admin API."""
from __future__ import annotations

import json
from pathlib import Path
from enum import Enum
from typing import List, Optional

import httpx
import typer

from .client import create_client


DEFAULT_API_BASE = "http://localhost:8000"

app = typer.Typer(help="Administer the movie catalog through the Phim Admin API.")
config_app = typer.Typer(help="Manage default crawl options.")
app.add_typer(config_app, name="config")
crawl_app = typer.Typer(help="Queue catalog crawls and inspect crawl logs.")
app.add_typer(crawl_app, name="crawl")
jobs_app = typer.Typer(help="Inspect background jobs.")
app.add_typer(jobs_app, name="jobs")
movies_app = typer.Typer(help="Browse and edit stored movies.")
app.add_typer(movies_app, name="movies")
taxonomy_app = typer.Typer(help="Browse and edit genres, countries, directors, actors and years.")
app.add_typer(taxonomy_app, name="taxonomy")
trash_app = typer.Typer(help="Restore or permanently delete trashed rows.")
app.add_typer(trash_app, name="trash")
catalog_app = typer.Typer(help="Query the remote catalog through the admin API.")
app.add_typer(catalog_app, name="catalog")


JOB_STATUS_CHOICES = {"queued", "running", "completed", "failed", "cancelled"}


class TaxonomyKindOption(str, Enum):
    genres = "genres"
    countries = "countries"
    directors = "directors"
    actors = "actors"
    years = "years"


class TrashKindOption(str, Enum):
    movies = "movies"
    genres = "genres"
    countries = "countries"
    directors = "directors"
    actors = "actors"
    years = "years"


class MovieSortOption(str, Enum):
    updated_desc = "updated_desc"
    updated_asc = "updated_asc"
    name_asc = "name_asc"
    name_desc = "name_desc"
    year_desc = "year_desc"
    year_asc = "year_asc"


def _api_base_option() -> typer.Option:
    return typer.Option(
        DEFAULT_API_BASE,
        "--api-base",
        help="Base URL for the Phim Admin API service.",
        show_default=True,
        envvar="PHIMADMIN_API_BASE",
    )


def _echo_json(response: httpx.Response) -> None:
    response.raise_for_status()
    typer.echo(json.dumps(response.json(), indent=2, ensure_ascii=False))


def _exit_if_missing(response: httpx.Response, message: str) -> None:
    if response.status_code == 404:
        typer.echo(message, err=True)
        raise typer.Exit(code=1)


def _exit_if_rejected(response: httpx.Response) -> None:
    """Print the API error detail for validation and conflict responses."""

    if response.status_code in {409, 422, 502, 503}:
        detail = response.json().get("detail")
        typer.echo(f"Error: {detail}", err=True)
        raise typer.Exit(code=1)


def _option_flag(name: str, help_text: str) -> typer.Option:
    return typer.Option(
        None,
        f"--{name}/--no-{name}",
        help=help_text,
        show_default=False,
    )


def _crawl_options(
    skip_genres: Optional[bool],
    skip_countries: Optional[bool],
    skip_directors: Optional[bool],
    skip_actors: Optional[bool],
    skip_episodes: Optional[bool],
    reencode_images: Optional[bool],
) -> dict[str, bool]:
    values = {
        "skip_genres": skip_genres,
        "skip_countries": skip_countries,
        "skip_directors": skip_directors,
        "skip_actors": skip_actors,
        "skip_episodes": skip_episodes,
        "reencode_images": reencode_images,
    }
    return {key: value for key, value in values.items() if value is not None}


@app.command()
def health(api_base: str = _api_base_option()) -> None:
    """Call the /health endpoint and pretty-print the response."""

    with create_client(api_base) as client:
        _echo_json(client.get("/health"))


@app.command()
def metrics(api_base: str = _api_base_option()) -> None:
    """Display dashboard counts for movies, episodes and crawl runs."""

    with create_client(api_base) as client:
        _echo_json(client.get("/metrics"))


@config_app.command("show")
def show_config(api_base: str = _api_base_option()) -> None:
    """Display the persisted crawl defaults."""

    with create_client(api_base) as client:
        _echo_json(client.get("/config"))


@config_app.command("update")
def update_config(
    skip_genres: Optional[bool] = _option_flag("skip-genres", "Do not link genres."),
    skip_countries: Optional[bool] = _option_flag("skip-countries", "Do not link countries."),
    skip_directors: Optional[bool] = _option_flag("skip-directors", "Do not link directors."),
    skip_actors: Optional[bool] = _option_flag("skip-actors", "Do not link actors."),
    skip_episodes: Optional[bool] = _option_flag("skip-episodes", "Leave episodes untouched."),
    reencode_images: Optional[bool] = _option_flag("reencode-images", "Store poster and thumb as null."),
    api_base: str = _api_base_option(),
) -> None:
    """Update crawl defaults with the provided flags."""

    payload = _crawl_options(
        skip_genres, skip_countries, skip_directors, skip_actors, skip_episodes, reencode_images
    )
    if not payload:
        typer.echo("No updates supplied.")
        raise typer.Exit(code=1)

    with create_client(api_base) as client:
        _echo_json(client.put("/config", json=payload))


@crawl_app.command("pages")
def crawl_pages(
    from_page: int = typer.Argument(..., help="First listing page, starting at 1."),
    to_page: int = typer.Argument(..., help="Last listing page, inclusive."),
    skip_genres: Optional[bool] = _option_flag("skip-genres", "Do not link genres."),
    skip_countries: Optional[bool] = _option_flag("skip-countries", "Do not link countries."),
    skip_directors: Optional[bool] = _option_flag("skip-directors", "Do not link directors."),
    skip_actors: Optional[bool] = _option_flag("skip-actors", "Do not link actors."),
    skip_episodes: Optional[bool] = _option_flag("skip-episodes", "Leave episodes untouched."),
    reencode_images: Optional[bool] = _option_flag("reencode-images", "Store poster and thumb as null."),
    api_base: str = _api_base_option(),
) -> None:
    """Queue a crawl of every movie on the given listing pages."""

    payload: dict[str, object] = {"from_page": from_page, "to_page": to_page}
    options = _crawl_options(
        skip_genres, skip_countries, skip_directors, skip_actors, skip_episodes, reencode_images
    )
    if options:
        payload["options"] = options

    with create_client(api_base) as client:
        response = client.post("/crawl/pages", json=payload)
        _exit_if_rejected(response)
        _echo_json(response)


@crawl_app.command("movie")
def crawl_movie(
    url: str = typer.Argument(..., help="Movie URL containing a /phim/<slug> segment."),
    skip_episodes: Optional[bool] = _option_flag("skip-episodes", "Leave episodes untouched."),
    reencode_images: Optional[bool] = _option_flag("reencode-images", "Store poster and thumb as null."),
    api_base: str = _api_base_option(),
) -> None:
    """Queue a crawl of a single movie."""

    payload: dict[str, object] = {"url": url}
    options = _crawl_options(None, None, None, None, skip_episodes, reencode_images)
    if options:
        payload["options"] = options

    with create_client(api_base) as client:
        response = client.post("/crawl/movie", json=payload)
        _exit_if_rejected(response)
        _echo_json(response)


@crawl_app.command("urls")
def crawl_urls(
    urls: Optional[List[str]] = typer.Argument(None, help="Movie URLs to crawl."),
    from_file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Read one URL per line from this file.",
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Queue a bulk crawl of movie URLs given as arguments or in a file."""

    lines = list(urls or [])
    if from_file is not None:
        lines.extend(from_file.read_text(encoding="utf-8").splitlines())
    if not any(line.strip() for line in lines):
        typer.echo("No URLs supplied.", err=True)
        raise typer.Exit(code=1)

    with create_client(api_base) as client:
        response = client.post("/crawl/urls", json={"urls": "\n".join(lines)})
        _exit_if_rejected(response)
        _echo_json(response)


@crawl_app.command("logs")
def crawl_logs(
    limit: int = typer.Option(20, min=1, max=200, help="Number of recent crawl runs to display."),
    status: Optional[str] = typer.Option(
        None, "--status", help="Filter by run status (running, success, error)."
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display recent crawl log rows, newest first."""

    params: dict[str, object] = {"limit": limit}
    if status:
        params["status"] = status
    with create_client(api_base) as client:
        _echo_json(client.get("/crawl/logs", params=params))


@jobs_app.command("list")
def list_jobs(
    limit: int = typer.Option(10, min=1, max=100, help="Number of recent jobs to display."),
    statuses: Optional[List[str]] = typer.Option(
        None,
        "--status",
        help="Filter results to specific job statuses (repeat the flag).",
    ),
    job_type: Optional[str] = typer.Option(
        None,
        "--type",
        help="Filter results to a specific job type.",
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display recent background jobs."""

    params: dict[str, object] = {"limit": limit}
    if statuses:
        normalized_statuses: list[str] = []
        for status in statuses:
            value = status.lower()
            if value not in JOB_STATUS_CHOICES:
                typer.echo(
                    "Invalid status value. Allowed values: "
                    + ", ".join(sorted(JOB_STATUS_CHOICES)),
                    err=True,
                )
                raise typer.Exit(code=1)
            normalized_statuses.append(value)
        params["status"] = normalized_statuses
    if job_type:
        params["type"] = job_type

    with create_client(api_base) as client:
        _echo_json(client.get("/jobs", params=params))


@jobs_app.command("show")
def show_job(
    job_id: str = typer.Argument(..., help="Identifier of the job to display."),
    api_base: str = _api_base_option(),
) -> None:
    """Display details for a single job."""

    with create_client(api_base) as client:
        response = client.get(f"/jobs/{job_id}")
        _exit_if_missing(response, "Job not found")
        _echo_json(response)


@jobs_app.command("cancel")
def cancel_job(
    job_id: str = typer.Argument(..., help="Identifier of the job to cancel."),
    reason: Optional[str] = typer.Option(
        None,
        "--reason",
        help="Optional reason recorded with the cancellation.",
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Cancel a queued or running job."""

    with create_client(api_base) as client:
        if reason is None:
            response = client.post(f"/jobs/{job_id}/cancel")
        else:
            response = client.post(f"/jobs/{job_id}/cancel", json={"reason": reason})
        _exit_if_missing(response, "Job not found")
        _exit_if_rejected(response)
        _echo_json(response)


@jobs_app.command("logs")
def job_logs(
    job_id: str = typer.Argument(..., help="Identifier of the job to inspect."),
    limit: int = typer.Option(50, min=1, max=500, help="Maximum number of log entries."),
    api_base: str = _api_base_option(),
) -> None:
    """Display persisted log events for a job."""

    with create_client(api_base) as client:
        response = client.get(f"/jobs/{job_id}/logs", params={"limit": limit})
        _exit_if_missing(response, "Job not found")
        _echo_json(response)


@movies_app.command("list")
def list_movies(
    page: int = typer.Option(1, min=1, help="Page number starting at 1."),
    page_size: int = typer.Option(25, min=1, max=100, help="Number of movies per page."),
    query: Optional[str] = typer.Option(None, help="Search by name or slug."),
    movie_type: Optional[str] = typer.Option(None, "--type", help="Filter by catalog type."),
    year: Optional[int] = typer.Option(None, min=1800, max=3000, help="Filter by release year."),
    sort: MovieSortOption = typer.Option(
        MovieSortOption.updated_desc,
        help="Sort ordering applied to results.",
        show_default=True,
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Display stored movies that are not in the trash."""

    params: dict[str, object] = {"page": page, "page_size": page_size, "sort": sort.value}
    if query:
        params["query"] = query
    if movie_type:
        params["type"] = movie_type
    if year is not None:
        params["year"] = year

    with create_client(api_base) as client:
        _echo_json(client.get("/movies", params=params))


@movies_app.command("show")
def show_movie(
    movie_id: str = typer.Argument(..., help="Movie identifier to display."),
    api_base: str = _api_base_option(),
) -> None:
    """Display a movie with its relations."""

    with create_client(api_base) as client:
        response = client.get(f"/movies/{movie_id}")
        _exit_if_missing(response, "Movie not found")
        _echo_json(response)


@movies_app.command("episodes")
def movie_episodes(
    movie_id: str = typer.Argument(..., help="Movie identifier."),
    api_base: str = _api_base_option(),
) -> None:
    """Display the episodes stored for a movie."""

    with create_client(api_base) as client:
        response = client.get(f"/movies/{movie_id}/episodes")
        _exit_if_missing(response, "Movie not found")
        _echo_json(response)


@movies_app.command("delete")
def delete_movie(
    movie_id: str = typer.Argument(..., help="Movie identifier to move to the trash."),
    api_base: str = _api_base_option(),
) -> None:
    """Move a movie to the trash."""

    with create_client(api_base) as client:
        response = client.delete(f"/movies/{movie_id}")
        _exit_if_missing(response, "Movie not found")
        response.raise_for_status()
        typer.echo(f"Movie {movie_id} moved to trash.")


@taxonomy_app.command("list")
def list_terms(
    kind: TaxonomyKindOption = typer.Argument(..., help="Lookup kind to list."),
    query: Optional[str] = typer.Option(None, help="Name filter."),
    limit: int = typer.Option(100, min=1, max=500),
    api_base: str = _api_base_option(),
) -> None:
    """Display active lookup entries of a kind."""

    params: dict[str, object] = {"limit": limit}
    if query:
        params["query"] = query
    with create_client(api_base) as client:
        _echo_json(client.get(f"/taxonomy/{kind.value}", params=params))


@taxonomy_app.command("add")
def add_term(
    kind: TaxonomyKindOption = typer.Argument(..., help="Lookup kind to extend."),
    name: str = typer.Argument(..., help="Display name, or the year for the years kind."),
    slug: Optional[str] = typer.Option(None, help="Slug; derived from the name when omitted."),
    api_base: str = _api_base_option(),
) -> None:
    """Create a lookup entry."""

    payload: dict[str, object] = {"name": name}
    if slug:
        payload["slug"] = slug
    with create_client(api_base) as client:
        response = client.post(f"/taxonomy/{kind.value}", json=payload)
        _exit_if_rejected(response)
        _echo_json(response)


@taxonomy_app.command("delete")
def delete_term(
    kind: TaxonomyKindOption = typer.Argument(..., help="Lookup kind."),
    item_id: str = typer.Argument(..., help="Identifier of the entry to trash."),
    api_base: str = _api_base_option(),
) -> None:
    """Move a lookup entry to the trash."""

    with create_client(api_base) as client:
        response = client.delete(f"/taxonomy/{kind.value}/{item_id}")
        _exit_if_missing(response, "Item not found")
        response.raise_for_status()
        typer.echo(f"Moved {kind.value} entry {item_id} to trash.")


@trash_app.command("list")
def list_trash(
    kind: TrashKindOption = typer.Argument(..., help="Trash kind to list."),
    api_base: str = _api_base_option(),
) -> None:
    """Display trashed rows with the days left before purge."""

    with create_client(api_base) as client:
        _echo_json(client.get(f"/trash/{kind.value}"))


@trash_app.command("restore")
def restore_trash(
    kind: TrashKindOption = typer.Argument(..., help="Trash kind."),
    ids: List[str] = typer.Argument(..., help="Identifiers to restore."),
    api_base: str = _api_base_option(),
) -> None:
    """Restore trashed rows."""

    with create_client(api_base) as client:
        _echo_json(client.post(f"/trash/{kind.value}/restore", json={"ids": ids}))


@trash_app.command("purge")
def purge_trash(
    kind: TrashKindOption = typer.Argument(..., help="Trash kind."),
    ids: List[str] = typer.Argument(..., help="Identifiers to delete permanently."),
    api_base: str = _api_base_option(),
) -> None:
    """Permanently delete trashed rows."""

    with create_client(api_base) as client:
        _echo_json(client.post(f"/trash/{kind.value}/purge", json={"ids": ids}))


@trash_app.command("empty")
def empty_trash(
    kind: TrashKindOption = typer.Argument(..., help="Trash kind to empty."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    api_base: str = _api_base_option(),
) -> None:
    """Permanently delete every trashed row of a kind."""

    if not yes:
        typer.confirm(f"Permanently delete every trashed {kind.value} row?", abort=True)
    with create_client(api_base) as client:
        _echo_json(client.delete(f"/trash/{kind.value}"))


@trash_app.command("sweep")
def sweep_trash(
    background: bool = typer.Option(
        False,
        "--background/--inline",
        help="Queue the sweep on the worker instead of running it in the API process.",
    ),
    api_base: str = _api_base_option(),
) -> None:
    """Purge trashed rows older than the retention window."""

    with create_client(api_base) as client:
        path = "/trash/sweep/job" if background else "/trash/sweep"
        response = client.post(path)
        _exit_if_rejected(response)
        _echo_json(response)


@catalog_app.command("status")
def catalog_status(api_base: str = _api_base_option()) -> None:
    """Report whether the remote catalog is reachable."""

    with create_client(api_base) as client:
        _echo_json(client.get("/catalog/status"))


@catalog_app.command("categories")
def catalog_categories(api_base: str = _api_base_option()) -> None:
    """List genre categories published by the remote catalog."""

    with create_client(api_base) as client:
        response = client.get("/catalog/categories")
        _exit_if_rejected(response)
        _echo_json(response)
