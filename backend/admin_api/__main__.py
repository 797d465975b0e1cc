"""CLI entry point for launching the Phim Admin API with Uvicorn."""
import logging

import uvicorn

from .app import create_app
from .settings import AdminSettings


def main() -> None:
    """Start a development server for the admin API."""
    settings = AdminSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
