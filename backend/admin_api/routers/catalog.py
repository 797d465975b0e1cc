"""Remote catalog passthrough endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_catalog_client
from ..schemas import CatalogStatusModel, CatalogTermModel
from ..services.catalog_client import CatalogClient, CatalogClientError

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/status", response_model=CatalogStatusModel)
def catalog_status(client: CatalogClient = Depends(get_catalog_client)) -> CatalogStatusModel:
    """Report whether the remote catalog answers and how fast."""

    status = client.status()
    return CatalogStatusModel.model_validate(status.model_dump())


@router.get("/categories", response_model=list[CatalogTermModel])
def catalog_categories(client: CatalogClient = Depends(get_catalog_client)) -> list[CatalogTermModel]:
    try:
        terms = client.list_categories()
    except CatalogClientError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [CatalogTermModel(name=term.name, slug=term.slug) for term in terms]


@router.get("/countries", response_model=list[CatalogTermModel])
def catalog_countries(client: CatalogClient = Depends(get_catalog_client)) -> list[CatalogTermModel]:
    try:
        terms = client.list_countries()
    except CatalogClientError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [CatalogTermModel(name=term.name, slug=term.slug) for term in terms]
