from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.errors import CatalogUnavailableError
from ...schemas.recommend import HealthResponse
from ...services.catalog import CatalogStore
from ..deps import get_catalog

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def get_health(catalog: CatalogStore = Depends(get_catalog)) -> HealthResponse:
    try:
        size = await catalog.count()
    except CatalogUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return HealthResponse(ok=True, catalog_size=size)
