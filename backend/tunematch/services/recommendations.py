from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core.config import CLUSTER_LEVELS, Settings
from ..core.errors import SeedNotFoundError, ValidationError
from .catalog import CatalogStore
from .clustering import SEEDS_REQUIRED, MatchDegree, match_clusters, select_cluster_candidates
from .history import HistoryRecord, HistorySink, record_history
from .similarity import score_candidates
from .tracks import Track, TrackId

logger = logging.getLogger("recommendations")

STRATEGY_CLUSTER = "cluster"
STRATEGY_SIMILARITY = "similarity"


@dataclass(frozen=True, slots=True)
class RankedTrack:
    track: Track
    rank: int
    similarity: float


@dataclass(frozen=True, slots=True)
class RecommendationResult:
    strategy: str
    items: List[RankedTrack] = field(default_factory=list)
    level_used: Optional[str] = None
    shared_value: Any = None
    match_degree: Optional[MatchDegree] = None

    @property
    def track_ids(self) -> List[TrackId]:
        return [item.track.id for item in self.items]


def _validate_n(n: int) -> int:
    if n < 0:
        raise ValidationError("n must be zero or positive")
    return n


def _validate_cluster_seeds(seed_ids: Sequence[TrackId]) -> List[TrackId]:
    ids = list(seed_ids)
    if len(ids) != SEEDS_REQUIRED:
        raise ValidationError(f"exactly {SEEDS_REQUIRED} seed track ids are required, got {len(ids)}")
    if len(set(ids)) != len(ids):
        raise ValidationError("seed track ids must be distinct")
    return ids


def _validate_similarity_seeds(seed_ids: Sequence[TrackId]) -> List[TrackId]:
    ids = list(dict.fromkeys(seed_ids))
    if not ids:
        raise ValidationError("at least one seed track id is required")
    return ids


async def _fetch_seeds(catalog: CatalogStore, seed_ids: Sequence[TrackId]) -> List[Track]:
    found: Dict[TrackId, Track] = {track.id: track for track in await catalog.get_by_ids(seed_ids)}
    missing = [track_id for track_id in seed_ids if track_id not in found]
    if missing:
        logger.info("Seed tracks missing from catalog: %s", missing)
        raise SeedNotFoundError(missing)
    return [found[track_id] for track_id in seed_ids]


async def recommend_by_cluster(
    seed_ids: Sequence[TrackId],
    *,
    catalog: CatalogStore,
    settings: Settings,
    n: int | None = None,
    with_fallback: bool | None = None,
    history: HistorySink | None = None,
    user_id: int | None = None,
) -> RecommendationResult:
    ids = _validate_cluster_seeds(seed_ids)
    limit = _validate_n(settings.cluster_default_n if n is None else n)
    if with_fallback is None:
        with_fallback = settings.cluster_with_fallback

    seeds = await _fetch_seeds(catalog, ids)
    pool = await catalog.get_all(settings.catalog_scan_limit)

    match = match_clusters(
        seeds,
        CLUSTER_LEVELS,
        with_fallback=with_fallback,
        fallback_index=settings.fallback_level_index,
    )
    logger.info(
        "Cluster match for %s: level=%s value=%s degree=%s",
        ids,
        match.level_name,
        match.shared_value,
        match.degree.value,
    )

    picked = select_cluster_candidates(pool, match, exclude=set(ids), n=limit)
    result = RecommendationResult(
        strategy=STRATEGY_CLUSTER,
        items=[RankedTrack(track=track, rank=rank, similarity=1.0) for rank, track in enumerate(picked, start=1)],
        level_used=match.level_name,
        shared_value=match.shared_value,
        match_degree=match.degree,
    )
    logger.debug("Top recommendations: %s", result.track_ids)

    if settings.persist_history:
        await record_history(
            history,
            HistoryRecord(
                seed_ids=tuple(ids),
                strategy=STRATEGY_CLUSTER,
                result_ids=tuple(result.track_ids),
                similarities=tuple(item.similarity for item in result.items),
                level_used=match.level_name,
                match_degree=match.degree.value,
                user_id=user_id,
            ),
        )
    return result


async def recommend_by_similarity(
    seed_ids: Sequence[TrackId],
    *,
    catalog: CatalogStore,
    settings: Settings,
    n: int | None = None,
    history: HistorySink | None = None,
    user_id: int | None = None,
) -> RecommendationResult:
    ids = _validate_similarity_seeds(seed_ids)
    limit = _validate_n(settings.similarity_default_n if n is None else n)

    seeds = await _fetch_seeds(catalog, ids)
    pool = await catalog.get_all(settings.catalog_scan_limit)

    scored = score_candidates(seeds, pool, n=limit)
    logger.info("Scored %s candidates for %s seeds, keeping %s", len(pool), len(seeds), len(scored))
    if scored:
        logger.debug("Best match %s at %.3f", scored[0][0].id, scored[0][1])

    result = RecommendationResult(
        strategy=STRATEGY_SIMILARITY,
        items=[
            RankedTrack(track=track, rank=rank, similarity=similarity)
            for rank, (track, similarity) in enumerate(scored, start=1)
        ],
    )

    if settings.persist_history:
        await record_history(
            history,
            HistoryRecord(
                seed_ids=tuple(ids),
                strategy=STRATEGY_SIMILARITY,
                result_ids=tuple(result.track_ids),
                similarities=tuple(item.similarity for item in result.items),
                user_id=user_id,
            ),
        )
    return result
