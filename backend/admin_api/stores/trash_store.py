"""Soft-delete trash: listing, restore, purge and the retention sweep."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Union

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..models import EpisodeRecord, MovieRecord, YearRecord
from ..schemas import TrashItemModel, TrashKind
from .taxonomy_store import LINK_MODELS, TERM_MODELS

TRASH_KINDS: tuple[str, ...] = ("movies", "genres", "countries", "directors", "actors", "years")


@dataclass(frozen=True, slots=True)
class Active:
    """Row is visible to the dashboard."""


@dataclass(frozen=True, slots=True)
class Deleted:
    """Row sits in the trash since ``at``."""

    at: datetime

    def expires_at(self, retention_days: int) -> datetime:
        return self.at + timedelta(days=retention_days)

    def days_remaining(self, retention_days: int, now: datetime) -> int:
        return max(0, (self.expires_at(retention_days) - now).days)

    def is_expired(self, retention_days: int, now: datetime) -> bool:
        return self.expires_at(retention_days) <= now


TrashState = Union[Active, Deleted]


def trash_state(deleted_at: datetime | None) -> TrashState:
    return Active() if deleted_at is None else Deleted(at=deleted_at)


def _model_for(kind: str) -> Any:
    if kind == "movies":
        return MovieRecord
    if kind == "years":
        return YearRecord
    return TERM_MODELS[kind]


def _display_name(kind: str, record: Any) -> str:
    if kind == "years":
        return str(record.year)
    return record.name


class TrashStore:
    """Operate on soft-deleted rows of every trashable table."""

    def __init__(self, engine: Engine, *, retention_days: int = 30) -> None:
        self._engine = engine
        self._retention_days = retention_days

    @property
    def retention_days(self) -> int:
        return self._retention_days

    def list(self, kind: TrashKind, *, now: datetime | None = None) -> list[TrashItemModel]:
        """Return trashed rows of ``kind``, most recently deleted first."""

        model = _model_for(kind)
        current = now or datetime.utcnow()
        statement = (
            select(model)
            .where(model.deleted_at.is_not(None))
            .order_by(model.deleted_at.desc())
        )
        items: list[TrashItemModel] = []
        with Session(self._engine) as session:
            for record in session.exec(statement):
                state = trash_state(record.deleted_at)
                if not isinstance(state, Deleted):
                    continue
                items.append(
                    TrashItemModel(
                        id=record.id,
                        kind=kind,
                        name=_display_name(kind, record),
                        deleted_at=state.at,
                        expires_at=state.expires_at(self._retention_days),
                        days_remaining=state.days_remaining(self._retention_days, current),
                    )
                )
        return items

    def restore(self, kind: TrashKind, ids: list[str]) -> int:
        """Clear ``deleted_at`` on the selected trashed rows."""

        model = _model_for(kind)
        with Session(self._engine) as session:
            result = session.exec(
                update(model)
                .where(model.id.in_(ids))
                .where(model.deleted_at.is_not(None))
                .values(deleted_at=None)
            )
            session.commit()
            return result.rowcount or 0

    def purge(self, kind: TrashKind, ids: list[str]) -> int:
        """Hard-delete the selected trashed rows together with dependent rows."""

        model = _model_for(kind)
        with Session(self._engine) as session:
            trashed_ids = list(
                session.exec(
                    select(model.id).where(model.id.in_(ids)).where(model.deleted_at.is_not(None))
                ).all()
            )
            removed = self._hard_delete(session, kind, trashed_ids)
            session.commit()
            return removed

    def empty(self, kind: TrashKind) -> int:
        """Purge every trashed row of ``kind``."""

        model = _model_for(kind)
        with Session(self._engine) as session:
            trashed_ids = list(
                session.exec(select(model.id).where(model.deleted_at.is_not(None))).all()
            )
            removed = self._hard_delete(session, kind, trashed_ids)
            session.commit()
            return removed

    def sweep(self, *, now: datetime | None = None) -> dict[str, int]:
        """Purge rows whose retention window has elapsed, across all kinds."""

        current = now or datetime.utcnow()
        purged: dict[str, int] = {}
        with Session(self._engine) as session:
            for kind in TRASH_KINDS:
                model = _model_for(kind)
                candidates = session.exec(
                    select(model.id, model.deleted_at).where(model.deleted_at.is_not(None))
                ).all()
                expired: list[str] = []
                for item_id, deleted_at in candidates:
                    state = trash_state(deleted_at)
                    if isinstance(state, Deleted) and state.is_expired(self._retention_days, current):
                        expired.append(item_id)
                purged[kind] = self._hard_delete(session, kind, expired)
            session.commit()
        return purged

    @staticmethod
    def _hard_delete(session: Session, kind: str, ids: list[str]) -> int:
        if not ids:
            return 0
        if kind == "movies":
            session.exec(delete(EpisodeRecord).where(EpisodeRecord.movie_id.in_(ids)))
            for link_model, _column in LINK_MODELS.values():
                session.exec(delete(link_model).where(link_model.movie_id.in_(ids)))
        elif kind in LINK_MODELS:
            link_model, column = LINK_MODELS[kind]
            session.exec(delete(link_model).where(getattr(link_model, column).in_(ids)))
        model = _model_for(kind)
        result = session.exec(delete(model).where(model.id.in_(ids)))
        return result.rowcount or 0
