"""Database helpers for the Phim Admin API."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .models import ConfigRecord
from .schemas import ConfigModel
from .settings import AdminSettings
from .utils.paths import ensure_parent_directory


def _ensure_sqlite_path(database_url: str) -> None:
    """Create parent directories when using a SQLite URL."""

    if database_url.startswith("sqlite:///"):
        path_part = database_url.removeprefix("sqlite:///").split("?")[0]
        if path_part and path_part != ":memory:":
            ensure_parent_directory(path_part)


def create_engine_from_settings(settings: AdminSettings) -> Engine:
    """Create a SQLModel engine using admin settings."""

    _ensure_sqlite_path(settings.database_url)
    connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
    return create_engine(settings.database_url, echo=settings.database_echo, connect_args=connect_args)


def init_database(engine: Engine) -> None:
    """Create tables and seed the default crawl configuration."""

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        record = session.get(ConfigRecord, 1)
        if record is None:
            session.add(ConfigRecord(id=1))
            session.commit()


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""

    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def read_config(session: Session) -> ConfigModel:
    """Fetch the persisted crawl defaults as a Pydantic model."""

    record = session.get(ConfigRecord, 1)
    if record is None:
        raise RuntimeError("Configuration record missing from database")
    return ConfigModel.model_validate(record, from_attributes=True)
