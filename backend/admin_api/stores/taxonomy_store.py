"""Lookup entities (genres, countries, directors, actors, years) and their movie links."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, select

from ..models import (
    ActorRecord,
    CountryRecord,
    DirectorRecord,
    GenreRecord,
    MovieActorLink,
    MovieCountryLink,
    MovieDirectorLink,
    MovieGenreLink,
    YearRecord,
)
from ..schemas import TaxonomyCreate, TaxonomyItemModel, TaxonomyKind
from ..utils.slugs import slugify


class TaxonomyConflictError(ValueError):
    """Raised when a lookup entity with the same slug already exists."""


TERM_MODELS: dict[str, type[SQLModel]] = {
    "genres": GenreRecord,
    "countries": CountryRecord,
    "directors": DirectorRecord,
    "actors": ActorRecord,
}

# kind -> (junction model, column holding the entity id)
LINK_MODELS: dict[str, tuple[type[SQLModel], str]] = {
    "genres": (MovieGenreLink, "genre_id"),
    "countries": (MovieCountryLink, "country_id"),
    "directors": (MovieDirectorLink, "director_id"),
    "actors": (MovieActorLink, "actor_id"),
}


def upsert_term(session: Session, kind: str, *, name: str, slug: str) -> str:
    """Return the id of the ``kind`` entity with ``slug``, creating it if absent."""

    model: Any = TERM_MODELS[kind]
    record = session.exec(select(model).where(model.slug == slug)).first()
    if record is None:
        record = model(name=name, slug=slug)
        session.add(record)
        session.flush()
    return record.id


def upsert_year(session: Session, year: int) -> str:
    record = session.exec(select(YearRecord).where(YearRecord.year == year)).first()
    if record is None:
        record = YearRecord(year=year)
        session.add(record)
        session.flush()
    return record.id


def ensure_link(session: Session, kind: str, movie_id: str, entity_id: str) -> bool:
    """Create the movie/entity junction row unless it exists. Returns True when created."""

    link_model, column = LINK_MODELS[kind]
    key = {"movie_id": movie_id, column: entity_id}
    if session.get(link_model, key) is not None:
        return False
    session.add(link_model(**key))
    session.flush()
    return True


def linked_names(session: Session, kind: str, movie_id: str) -> list[str]:
    """Names of the active ``kind`` entities linked to a movie."""

    model: Any = TERM_MODELS[kind]
    link_model, column = LINK_MODELS[kind]
    statement = (
        select(model.name)
        .join(link_model, getattr(link_model, column) == model.id)
        .where(link_model.movie_id == movie_id)
        .where(model.deleted_at.is_(None))
        .order_by(model.name)
    )
    return list(session.exec(statement).all())


def _to_model(kind: str, record: Any) -> TaxonomyItemModel:
    if kind == "years":
        value = str(record.year)
        return TaxonomyItemModel(id=record.id, name=value, slug=value, created_at=record.created_at)
    return TaxonomyItemModel(
        id=record.id, name=record.name, slug=record.slug, created_at=record.created_at
    )


class TaxonomyStore:
    """CRUD surface for the lookup tables used by the admin dashboard."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @staticmethod
    def _model(kind: TaxonomyKind) -> Any:
        return YearRecord if kind == "years" else TERM_MODELS[kind]

    def list(
        self,
        kind: TaxonomyKind,
        *,
        query: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[TaxonomyItemModel]:
        """Return active entities of ``kind``; trashed rows are hidden."""

        model = self._model(kind)
        statement = select(model).where(model.deleted_at.is_(None))
        if kind == "years":
            statement = statement.order_by(model.year.desc())
        else:
            if query:
                statement = statement.where(model.name.ilike(f"%{query}%"))
            statement = statement.order_by(model.name)
        statement = statement.offset(offset).limit(limit)
        with Session(self._engine) as session:
            return [_to_model(kind, record) for record in session.exec(statement)]

    def get(self, kind: TaxonomyKind, item_id: str) -> TaxonomyItemModel | None:
        with Session(self._engine) as session:
            record = session.get(self._model(kind), item_id)
            if record is None or record.deleted_at is not None:
                return None
            return _to_model(kind, record)

    def create(self, kind: TaxonomyKind, payload: TaxonomyCreate) -> TaxonomyItemModel:
        """Insert a new entity; the slug defaults to the slugified name."""

        model = self._model(kind)
        with Session(self._engine) as session:
            if kind == "years":
                try:
                    year = int(payload.name)
                except ValueError as exc:
                    raise ValueError("Year must be an integer") from exc
                if session.exec(select(model).where(model.year == year)).first() is not None:
                    raise TaxonomyConflictError(f"Year {year} already exists")
                record = model(year=year)
            else:
                slug = payload.slug or slugify(payload.name)
                if not slug:
                    raise ValueError("Slug must not be empty")
                if session.exec(select(model).where(model.slug == slug)).first() is not None:
                    raise TaxonomyConflictError(f"{kind} slug {slug!r} already exists")
                record = model(name=payload.name.strip(), slug=slug)
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(kind, record)

    def soft_delete(self, kind: TaxonomyKind, item_id: str) -> bool:
        """Move an entity to the trash. Returns False when it is missing or already trashed."""

        with Session(self._engine) as session:
            record = session.get(self._model(kind), item_id)
            if record is None or record.deleted_at is not None:
                return False
            record.deleted_at = datetime.utcnow()
            session.add(record)
            session.commit()
            return True
