"""Filesystem helpers for admin data paths."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir


APP_NAME = "PhimAdmin"
APP_AUTHOR = "PhimAdmin"


def default_data_directory() -> str:
    """Return the platform-appropriate data directory for the admin service."""

    return user_data_dir(APP_NAME, APP_AUTHOR)


def default_database_url() -> str:
    """Return a SQLite URL inside the platform data directory."""

    db_path = Path(default_data_directory()) / "admin.db"
    return f"sqlite:///{db_path}"


def ensure_parent_directory(path: str) -> str:
    """Expand a file path and create its parent directory if missing."""

    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)
