"""Application factory for the Phim Admin API."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import catalog, config, crawl, health, jobs, movies, taxonomy, trash
from .settings import AdminSettings
from .state import AppState


def create_app(settings: AdminSettings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or AdminSettings()
    app_state = AppState(settings=resolved_settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        app_state.open()
        yield
        app_state.close()

    app = FastAPI(title="Phim Admin API", version="0.1.0", lifespan=lifespan)
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        health.router,
        config.router,
        jobs.router,
        crawl.router,
        movies.router,
        taxonomy.router,
        trash.router,
        catalog.router,
    ):
        app.include_router(router)

    return app
