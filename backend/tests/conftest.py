"""Shared fixtures: an in-memory stand-in for the remote movie catalog."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

CATALOG_BASE = "https://catalog.test"


def movie_payload(
    slug: str,
    *,
    name: str | None = None,
    episodes: int = 3,
    servers: int = 1,
    categories: list[dict[str, str]] | None = None,
    countries: list[dict[str, str]] | None = None,
    directors: list[str] | None = None,
    actors: list[str] | None = None,
    year: Any = 2024,
) -> dict[str, Any]:
    """Build a detail response shaped like ``GET /phim/<slug>``."""

    return {
        "status": True,
        "msg": "",
        "movie": {
            "name": name or slug.replace("-", " ").title(),
            "slug": slug,
            "origin_name": f"{slug} original",
            "content": "<p>Plot</p>",
            "type": "series",
            "status": "ongoing",
            "poster_url": f"https://img.test/{slug}-poster.jpg",
            "thumb_url": f"https://img.test/{slug}-thumb.jpg",
            "trailer_url": "",
            "time": "45 phút/tập",
            "episode_current": f"Tập {episodes}",
            "episode_total": 16,
            "quality": "FHD",
            "lang": "Vietsub",
            "year": year,
            "category": categories
            if categories is not None
            else [{"id": "c1", "name": "Hành Động", "slug": "hanh-dong"}],
            "country": countries
            if countries is not None
            else [{"id": "k1", "name": "Hàn Quốc", "slug": "han-quoc"}],
            "director": directors if directors is not None else ["Kim Jee-woon"],
            "actor": actors if actors is not None else ["Lee Byung-hun", "Song Kang-ho"],
        },
        "episodes": [
            {
                "server_name": f"#Vietsub {server + 1}",
                "server_data": [
                    {
                        "name": f"Tập {number:02d}",
                        "slug": f"tap-{number:02d}",
                        "filename": "",
                        "link_embed": f"https://embed.test/{slug}/{server}/{number}",
                        "link_m3u8": f"https://stream.test/{slug}/{server}/{number}/index.m3u8",
                    }
                    for number in range(1, episodes + 1)
                ],
            }
            for server in range(servers)
        ],
    }


class FakeCatalog:
    """Serves listing, detail and taxonomy routes from in-memory dictionaries."""

    def __init__(self) -> None:
        self.movies: dict[str, dict[str, Any]] = {}
        self.pages: dict[int, list[str]] = {}
        self.failing_paths: set[str] = set()
        self.requests: list[httpx.URL] = []
        self.on_request: Callable[[httpx.URL], None] | None = None

    def add_movie(self, slug: str, **kwargs: Any) -> dict[str, Any]:
        payload = movie_payload(slug, **kwargs)
        self.movies[slug] = payload
        return payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url)
        if self.on_request is not None:
            self.on_request(request.url)
        path = request.url.path
        if path in self.failing_paths:
            return httpx.Response(500, json={"status": False})

        if path == "/danh-sach/phim-moi-cap-nhat":
            page = int(request.url.params.get("page", "1"))
            slugs = self.pages.get(page, [])
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "items": [{"name": slug.title(), "slug": slug} for slug in slugs],
                    "pagination": {
                        "totalItems": sum(len(items) for items in self.pages.values()),
                        "totalItemsPerPage": 10,
                        "currentPage": page,
                        "totalPages": len(self.pages),
                    },
                },
            )
        if path.startswith("/phim/"):
            slug = path[len("/phim/"):]
            payload = self.movies.get(slug)
            if payload is None:
                return httpx.Response(200, json={"status": False, "msg": "Movie not found", "movie": None})
            return httpx.Response(200, json=payload)
        if path == "/the-loai":
            return httpx.Response(
                200,
                json=[
                    {"_id": "c1", "name": "Hành Động", "slug": "hanh-dong"},
                    {"_id": "c2", "name": "Tình Cảm", "slug": "tinh-cam"},
                ],
            )
        if path == "/quoc-gia":
            return httpx.Response(200, json=[{"_id": "k1", "name": "Hàn Quốc", "slug": "han-quoc"}])
        return httpx.Response(404, json={"status": False})

    @property
    def paths(self) -> list[str]:
        return [url.path for url in self.requests]


@pytest.fixture()
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()
