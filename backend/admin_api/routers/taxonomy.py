"""Lookup taxonomy endpoints (genres, countries, directors, actors, years)."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..dependencies import get_taxonomy_store
from ..schemas import TaxonomyCreate, TaxonomyItemModel, TaxonomyKind
from ..stores.taxonomy_store import TaxonomyConflictError, TaxonomyStore

router = APIRouter(prefix="/taxonomy", tags=["taxonomy"])


@router.get("/{kind}", response_model=list[TaxonomyItemModel])
def list_terms(
    kind: TaxonomyKind,
    query: str | None = Query(default=None, description="Case-insensitive name filter."),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: TaxonomyStore = Depends(get_taxonomy_store),
) -> list[TaxonomyItemModel]:
    return store.list(kind, query=query, limit=limit, offset=offset)


@router.post("/{kind}", response_model=TaxonomyItemModel, status_code=201)
def create_term(
    kind: TaxonomyKind,
    payload: TaxonomyCreate,
    store: TaxonomyStore = Depends(get_taxonomy_store),
) -> TaxonomyItemModel:
    try:
        return store.create(kind, payload)
    except TaxonomyConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{kind}/{item_id}", response_model=TaxonomyItemModel)
def get_term(
    kind: TaxonomyKind, item_id: str, store: TaxonomyStore = Depends(get_taxonomy_store)
) -> TaxonomyItemModel:
    item = store.get(kind, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.delete("/{kind}/{item_id}", status_code=204)
def delete_term(
    kind: TaxonomyKind, item_id: str, store: TaxonomyStore = Depends(get_taxonomy_store)
) -> Response:
    """Move a lookup entity to the trash."""

    if not store.soft_delete(kind, item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return Response(status_code=204)
