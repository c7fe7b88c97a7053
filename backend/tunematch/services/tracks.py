from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union

from ..core.config import CLUSTER_LEVELS
from .features import FEATURE_KEYS, FeatureTuple

TrackId = Union[int, str]


@dataclass(frozen=True, slots=True)
class Track:
    id: TrackId
    name: str
    artists: str
    popularity: float
    cluster_levels: Tuple[Any, ...]
    features: FeatureTuple

    def __post_init__(self) -> None:
        if len(self.features) != len(FEATURE_KEYS):
            raise ValueError(f"track {self.id!r} has {len(self.features)} features, expected {len(FEATURE_KEYS)}")
        if len(self.cluster_levels) != len(CLUSTER_LEVELS):
            raise ValueError(
                f"track {self.id!r} has {len(self.cluster_levels)} cluster levels, expected {len(CLUSTER_LEVELS)}"
            )
        if self.popularity < 0:
            raise ValueError(f"track {self.id!r} has negative popularity")
