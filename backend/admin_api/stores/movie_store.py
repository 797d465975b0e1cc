"""Movie and episode persistence for the admin dashboard and the synchronizer."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Sequence

from sqlalchemy import delete, func, or_
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..models import EpisodeRecord, MovieRecord
from ..schemas import (
    EpisodeCreate,
    EpisodeModel,
    EpisodeUpdate,
    MovieCreate,
    MovieDetailModel,
    MovieListModel,
    MovieModel,
    MovieSortOption,
    MovieUpdate,
)
from ..utils.slugs import slugify
from .taxonomy_store import linked_names


class MovieConflictError(ValueError):
    """Raised when a movie slug is already taken."""


_LINK_FIELDS = ("link_m3u8", "link_embed", "filename")


def link_fields(link_type: str, value: str) -> dict[str, str | None]:
    """Map an admin link type onto exactly one populated episode link column."""

    fields: dict[str, str | None] = dict.fromkeys(_LINK_FIELDS)
    if link_type == "m3u8":
        fields["link_m3u8"] = value
    elif link_type == "embed":
        fields["link_embed"] = value
    else:
        fields["filename"] = value
    return fields


def find_movie_by_slug(session: Session, slug: str) -> MovieRecord | None:
    """Look up a movie by slug regardless of its trash state."""

    return session.exec(select(MovieRecord).where(MovieRecord.slug == slug)).first()


def replace_episodes(session: Session, movie_id: str, rows: Iterable[dict[str, Any]]) -> int:
    """Delete every episode of ``movie_id`` and insert ``rows`` in order."""

    session.exec(delete(EpisodeRecord).where(EpisodeRecord.movie_id == movie_id))
    inserted = 0
    for row in rows:
        session.add(EpisodeRecord(movie_id=movie_id, **row))
        inserted += 1
    session.flush()
    return inserted


@dataclass(slots=True)
class MovieStore:
    """CRUD accessor for movies and their episodes."""

    engine: Engine

    def list(
        self,
        *,
        query: str | None = None,
        movie_type: str | None = None,
        year: int | None = None,
        sort: MovieSortOption = "updated_desc",
        page: int = 1,
        page_size: int = 25,
    ) -> MovieListModel:
        """Return a paginated set of active movies matching the provided filters."""

        offset = (page - 1) * page_size
        filters = [MovieRecord.deleted_at.is_(None)]
        if query:
            pattern = f"%{query.lower()}%"
            filters.append(
                or_(
                    func.lower(MovieRecord.name).like(pattern),
                    func.lower(MovieRecord.origin_name).like(pattern),
                    MovieRecord.slug.like(pattern),
                )
            )
        if movie_type:
            filters.append(MovieRecord.type == movie_type)
        if year is not None:
            filters.append(MovieRecord.year == year)

        count_statement = select(func.count()).select_from(MovieRecord)
        items_statement = select(MovieRecord)
        for condition in filters:
            count_statement = count_statement.where(condition)
            items_statement = items_statement.where(condition)

        sort_orders: dict[str, tuple[object, ...]] = {
            "updated_desc": (MovieRecord.updated_at.desc(), MovieRecord.id),
            "updated_asc": (MovieRecord.updated_at.asc(), MovieRecord.id),
            "name_asc": (func.lower(MovieRecord.name).asc(), MovieRecord.id),
            "name_desc": (func.lower(MovieRecord.name).desc(), MovieRecord.id),
            "year_desc": (MovieRecord.year.desc().nullslast(), func.lower(MovieRecord.name).asc()),
            "year_asc": (MovieRecord.year.asc().nullslast(), func.lower(MovieRecord.name).asc()),
        }
        order_by_clauses = sort_orders.get(sort, sort_orders["updated_desc"])
        items_statement = items_statement.order_by(*order_by_clauses).offset(offset).limit(page_size)

        with Session(self.engine) as session:
            total = session.exec(count_statement).one()
            records: Sequence[MovieRecord] = session.exec(items_statement).all()
            items = [MovieModel.model_validate(record) for record in records]

        return MovieListModel(items=items, total=total, page=page, page_size=page_size)

    def get(self, movie_id: str) -> MovieDetailModel | None:
        """Return an active movie with its relation names and episode count."""

        with Session(self.engine) as session:
            record = session.get(MovieRecord, movie_id)
            if record is None or record.deleted_at is not None:
                return None
            episode_count = session.exec(
                select(func.count())
                .select_from(EpisodeRecord)
                .where(EpisodeRecord.movie_id == movie_id)
            ).one()
            return MovieDetailModel(
                **MovieModel.model_validate(record).model_dump(),
                genres=linked_names(session, "genres", movie_id),
                countries=linked_names(session, "countries", movie_id),
                directors=linked_names(session, "directors", movie_id),
                actors=linked_names(session, "actors", movie_id),
                episode_count=episode_count,
            )

    def create(self, payload: MovieCreate) -> MovieModel:
        slug = payload.slug or slugify(payload.name)
        if not slug:
            raise ValueError("Slug must not be empty")
        with Session(self.engine) as session:
            if find_movie_by_slug(session, slug) is not None:
                raise MovieConflictError(f"Movie slug {slug!r} already exists")
            record = MovieRecord(**payload.model_dump(exclude={"slug"}), slug=slug)
            session.add(record)
            session.commit()
            session.refresh(record)
            return MovieModel.model_validate(record)

    def update(self, movie_id: str, payload: MovieUpdate) -> MovieModel | None:
        changes = payload.model_dump(exclude_unset=True)
        with Session(self.engine) as session:
            record = session.get(MovieRecord, movie_id)
            if record is None or record.deleted_at is not None:
                return None
            new_slug = changes.get("slug")
            if new_slug and new_slug != record.slug:
                if find_movie_by_slug(session, new_slug) is not None:
                    raise MovieConflictError(f"Movie slug {new_slug!r} already exists")
            for key, value in changes.items():
                if key in ("name", "slug") and not value:
                    continue
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return MovieModel.model_validate(record)

    def soft_delete(self, movie_id: str) -> bool:
        """Move a movie to the trash. Episodes and links stay until it is purged."""

        with Session(self.engine) as session:
            record = session.get(MovieRecord, movie_id)
            if record is None or record.deleted_at is not None:
                return False
            record.deleted_at = datetime.utcnow()
            session.add(record)
            session.commit()
            return True

    def list_episodes(self, movie_id: str) -> list[EpisodeModel] | None:
        """Return episodes grouped by server then name; ``None`` if the movie is missing."""

        with Session(self.engine) as session:
            movie = session.get(MovieRecord, movie_id)
            if movie is None or movie.deleted_at is not None:
                return None
            records = session.exec(
                select(EpisodeRecord)
                .where(EpisodeRecord.movie_id == movie_id)
                .order_by(EpisodeRecord.server_name, EpisodeRecord.name)
            ).all()
            return [EpisodeModel.model_validate(record) for record in records]

    def add_episode(self, movie_id: str, payload: EpisodeCreate) -> EpisodeModel | None:
        with Session(self.engine) as session:
            movie = session.get(MovieRecord, movie_id)
            if movie is None or movie.deleted_at is not None:
                return None
            record = EpisodeRecord(
                movie_id=movie_id,
                name=payload.name,
                slug=payload.slug or slugify(payload.name),
                server_name=payload.server_name,
                **link_fields(payload.link_type, payload.link_value),
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            return EpisodeModel.model_validate(record)

    def update_episode(self, episode_id: str, payload: EpisodeUpdate) -> EpisodeModel | None:
        with Session(self.engine) as session:
            record = session.get(EpisodeRecord, episode_id)
            if record is None:
                return None
            changes = payload.model_dump(exclude_unset=True, exclude={"link_type", "link_value"})
            for key, value in changes.items():
                if value is not None:
                    setattr(record, key, value)
            if payload.link_type is not None and payload.link_value is not None:
                for key, value in link_fields(payload.link_type, payload.link_value).items():
                    setattr(record, key, value)
            session.add(record)
            session.commit()
            session.refresh(record)
            return EpisodeModel.model_validate(record)

    def delete_episode(self, episode_id: str) -> bool:
        with Session(self.engine) as session:
            record = session.get(EpisodeRecord, episode_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def counts(self) -> tuple[int, int, int]:
        """Return (active movies, episodes, trashed movies)."""

        with Session(self.engine) as session:
            movies = session.exec(
                select(func.count()).select_from(MovieRecord).where(MovieRecord.deleted_at.is_(None))
            ).one()
            episodes = session.exec(select(func.count()).select_from(EpisodeRecord)).one()
            trashed = session.exec(
                select(func.count()).select_from(MovieRecord).where(MovieRecord.deleted_at.is_not(None))
            ).one()
        return movies, episodes, trashed
