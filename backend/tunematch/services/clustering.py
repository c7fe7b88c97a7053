"""Hierarchical cluster consensus matching.

Every catalog track carries precomputed cluster labels ordered from the
coarsest grouping to the finest. Three seeds are matched by scanning those
levels for agreement:

1. the first level (coarsest first) where all three labels agree;
2. otherwise the first level where exactly two labels agree;
3. otherwise the designated fallback level with seed #1's label, or
   ``NoConsensusError`` when the fallback is switched off.

A three-way match at any level always beats a two-way match at any level.
"""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Set

from ..core.errors import NoConsensusError, ValidationError
from .tracks import Track, TrackId

SEEDS_REQUIRED = 3


class MatchDegree(str, enum.Enum):
    ALL_THREE = "ALL_THREE"
    TWO_OF_THREE = "TWO_OF_THREE"
    FALLBACK_FIRST_SEED = "FALLBACK_FIRST_SEED"


@dataclass(frozen=True, slots=True)
class ClusterMatch:
    level_index: int
    level_name: str
    shared_value: Any
    degree: MatchDegree


def _three_way(values: Sequence[Any]) -> bool:
    return values[0] == values[1] == values[2]


def _two_way(values: Sequence[Any]) -> List[Any]:
    return [value for value, count in Counter(values).items() if count == 2]


def match_clusters(
    seeds: Sequence[Track],
    levels: Sequence[str],
    *,
    with_fallback: bool = True,
    fallback_index: int | None = None,
) -> ClusterMatch:
    if len(seeds) != SEEDS_REQUIRED:
        raise ValidationError(f"cluster matching needs exactly {SEEDS_REQUIRED} seeds, got {len(seeds)}")
    if not levels:
        raise ValidationError("no cluster levels configured")

    for index, name in enumerate(levels):
        values = [seed.cluster_levels[index] for seed in seeds]
        if _three_way(values):
            return ClusterMatch(index, name, values[0], MatchDegree.ALL_THREE)

    for index, name in enumerate(levels):
        values = [seed.cluster_levels[index] for seed in seeds]
        shared = _two_way(values)
        if shared:
            return ClusterMatch(index, name, shared[0], MatchDegree.TWO_OF_THREE)

    if not with_fallback:
        raise NoConsensusError("seed tracks share no cluster label at any level")

    if fallback_index is None:
        fallback_index = len(levels) // 2
    return ClusterMatch(
        fallback_index,
        levels[fallback_index],
        seeds[0].cluster_levels[fallback_index],
        MatchDegree.FALLBACK_FIRST_SEED,
    )


def select_cluster_candidates(
    catalog: Iterable[Track],
    match: ClusterMatch,
    *,
    exclude: Set[TrackId],
    n: int,
) -> List[Track]:
    """Tracks sharing ``match``'s label, most popular first.

    Ties on popularity keep catalog order.
    """
    if n <= 0:
        return []
    pool = [
        track
        for track in catalog
        if track.id not in exclude and track.cluster_levels[match.level_index] == match.shared_value
    ]
    pool.sort(key=lambda track: track.popularity, reverse=True)
    return pool[:n]
