"""Movie and episode CRUD endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..dependencies import get_movie_store
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
from ..stores.movie_store import MovieConflictError, MovieStore

router = APIRouter(tags=["movies"])


@router.get("/movies", response_model=MovieListModel)
def list_movies(
    query: str | None = Query(default=None, description="Search by name, original name or slug."),
    movie_type: str | None = Query(
        default=None,
        alias="type",
        description="Filter results by catalog type (single, series, hoathinh, tvshows).",
    ),
    year: int | None = Query(
        default=None,
        ge=1800,
        le=3000,
        description="Filter results by an exact release year.",
    ),
    sort: MovieSortOption = Query(
        default="updated_desc",
        description="Sort ordering applied to the returned movies.",
    ),
    page: int = Query(default=1, ge=1, description="Page number starting at 1."),
    page_size: int = Query(
        default=25,
        ge=1,
        le=100,
        description="Number of movies to return per page.",
    ),
    store: MovieStore = Depends(get_movie_store),
) -> MovieListModel:
    """Return paginated movies that are not in the trash."""

    return store.list(
        query=query,
        movie_type=movie_type,
        year=year,
        sort=sort,
        page=page,
        page_size=page_size,
    )


@router.post("/movies", response_model=MovieModel, status_code=201)
def create_movie(payload: MovieCreate, store: MovieStore = Depends(get_movie_store)) -> MovieModel:
    try:
        return store.create(payload)
    except MovieConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/movies/{movie_id}", response_model=MovieDetailModel)
def get_movie(movie_id: str, store: MovieStore = Depends(get_movie_store)) -> MovieDetailModel:
    """Return a movie with its genres, countries, directors, actors and episode count."""

    movie = store.get(movie_id)
    if movie is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie


@router.patch("/movies/{movie_id}", response_model=MovieModel)
def update_movie(
    movie_id: str, payload: MovieUpdate, store: MovieStore = Depends(get_movie_store)
) -> MovieModel:
    try:
        movie = store.update(movie_id, payload)
    except MovieConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if movie is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie


@router.delete("/movies/{movie_id}", status_code=204)
def delete_movie(movie_id: str, store: MovieStore = Depends(get_movie_store)) -> Response:
    """Move a movie to the trash."""

    if not store.soft_delete(movie_id):
        raise HTTPException(status_code=404, detail="Movie not found")
    return Response(status_code=204)


@router.get("/movies/{movie_id}/episodes", response_model=list[EpisodeModel])
def list_episodes(movie_id: str, store: MovieStore = Depends(get_movie_store)) -> list[EpisodeModel]:
    episodes = store.list_episodes(movie_id)
    if episodes is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return episodes


@router.post("/movies/{movie_id}/episodes", response_model=EpisodeModel, status_code=201)
def add_episode(
    movie_id: str, payload: EpisodeCreate, store: MovieStore = Depends(get_movie_store)
) -> EpisodeModel:
    episode = store.add_episode(movie_id, payload)
    if episode is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return episode


@router.patch("/episodes/{episode_id}", response_model=EpisodeModel)
def update_episode(
    episode_id: str, payload: EpisodeUpdate, store: MovieStore = Depends(get_movie_store)
) -> EpisodeModel:
    episode = store.update_episode(episode_id, payload)
    if episode is None:
        raise HTTPException(status_code=404, detail="Episode not found")
    return episode


@router.delete("/episodes/{episode_id}", status_code=204)
def delete_episode(episode_id: str, store: MovieStore = Depends(get_movie_store)) -> Response:
    if not store.delete_episode(episode_id):
        raise HTTPException(status_code=404, detail="Episode not found")
    return Response(status_code=204)
