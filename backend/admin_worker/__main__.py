"""Entry point for running the Phim Admin RQ worker."""
from __future__ import annotations

import logging
import os

from rq import Queue, SimpleWorker, Worker

from backend.admin_api.services.queue import connect_redis
from backend.admin_api.settings import AdminSettings


def main() -> None:
    """Start an RQ worker connected to the configured crawl queue."""

    settings = AdminSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    connection = connect_redis(settings.redis_url)

    # Windows has no fork
    worker_class = SimpleWorker if os.name == "nt" else Worker
    worker = worker_class(
        [Queue(settings.redis_queue_name, connection=connection)],
        connection=connection,
        name=settings.queue_worker_name,
    )
    worker.work(with_scheduler=False)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
