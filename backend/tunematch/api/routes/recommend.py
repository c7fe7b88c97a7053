from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.config import Settings
from ...core.errors import (
    CatalogUnavailableError,
    InsufficientFeatureDataError,
    NoConsensusError,
    RecommendationError,
    SeedNotFoundError,
    ValidationError,
)
from ...schemas.recommend import (
    ClusterRecommendRequest,
    ClusterRecommendResponse,
    SimilarityItem,
    SimilarityRecommendRequest,
    SimilarityRecommendResponse,
    TrackOut,
)
from ...services.catalog import CatalogStore
from ...services.history import HistorySink
from ...services.recommendations import recommend_by_cluster, recommend_by_similarity
from ..deps import get_catalog, get_history_sink, get_settings_dep

router = APIRouter(prefix="/v1/recommendations", tags=["recommendations"])


def _to_http_error(exc: RecommendationError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, SeedNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(exc), "missing_ids": exc.missing_ids},
        )
    if isinstance(exc, (NoConsensusError, InsufficientFeatureDataError)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, CatalogUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    code = status.HTTP_400_BAD_REQUEST if exc.client_error else status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def _clamp(n: int | None, settings: Settings) -> int | None:
    if n is None:
        return None
    return min(n, settings.max_n)


@router.post("/cluster", response_model=ClusterRecommendResponse)
async def create_cluster_recommendations(
    payload: ClusterRecommendRequest,
    *,
    catalog: CatalogStore = Depends(get_catalog),
    history: HistorySink | None = Depends(get_history_sink),
    settings: Settings = Depends(get_settings_dep),
) -> ClusterRecommendResponse:
    try:
        result = await recommend_by_cluster(
            payload.seed_ids,
            catalog=catalog,
            settings=settings,
            n=_clamp(payload.n, settings),
            history=history,
            user_id=payload.user_id,
        )
    except RecommendationError as exc:
        raise _to_http_error(exc) from exc
    return ClusterRecommendResponse(
        recommendations=[TrackOut.from_track(item.track) for item in result.items],
        level_used=result.level_used,
        shared_value=result.shared_value,
        match_degree=result.match_degree,
    )


@router.post("/similarity", response_model=SimilarityRecommendResponse)
async def create_similarity_recommendations(
    payload: SimilarityRecommendRequest,
    *,
    catalog: CatalogStore = Depends(get_catalog),
    history: HistorySink | None = Depends(get_history_sink),
    settings: Settings = Depends(get_settings_dep),
) -> SimilarityRecommendResponse:
    try:
        result = await recommend_by_similarity(
            payload.seed_ids,
            catalog=catalog,
            settings=settings,
            n=_clamp(payload.n, settings),
            history=history,
            user_id=payload.user_id,
        )
    except RecommendationError as exc:
        raise _to_http_error(exc) from exc
    return SimilarityRecommendResponse(recommendations=[SimilarityItem.from_ranked(item) for item in result.items])
