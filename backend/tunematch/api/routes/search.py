from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.config import Settings
from ...core.errors import CatalogUnavailableError
from ...schemas.recommend import SearchResponse, SearchResult
from ...services.catalog import CatalogStore
from ..deps import get_catalog, get_settings_dep

router = APIRouter(prefix="/v1", tags=["search"])


@router.get("/search", response_model=SearchResponse)
async def search_tracks(
    query: str = Query(default=""),
    *,
    catalog: CatalogStore = Depends(get_catalog),
    settings: Settings = Depends(get_settings_dep),
) -> SearchResponse:
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing or empty search query")
    try:
        tracks = await catalog.search(query, settings.search_limit)
    except CatalogUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return SearchResponse(results=[SearchResult(id=t.id, name=t.name, artists=t.artists) for t in tracks])
