from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from sklearn.preprocessing import normalize

from ..core.errors import InsufficientFeatureDataError
from .features import FEATURE_KEYS, feature_matrix
from .tracks import Track

ScoredTrack = Tuple[Track, float]

SCORE_DECIMALS = 12


def compute_centroid(seeds: Sequence[Track]) -> np.ndarray:
    """Component-wise mean of the seed feature vectors.

    A missing value is left out of its component's mean instead of counting
    as zero. A component no seed provides makes the centroid undefined.
    """
    if not seeds:
        raise InsufficientFeatureDataError(FEATURE_KEYS)
    matrix = feature_matrix([seed.features for seed in seeds])
    present = ~np.isnan(matrix)
    counts = present.sum(axis=0)
    missing = [key for key, count in zip(FEATURE_KEYS, counts) if count == 0]
    if missing:
        raise InsufficientFeatureDataError(missing)
    totals = np.where(present, matrix, 0.0).sum(axis=0)
    return totals / counts


def score_candidates(
    seeds: Sequence[Track],
    candidates: Sequence[Track],
    *,
    n: int | None = None,
) -> List[ScoredTrack]:
    """Rank ``candidates`` by cosine similarity to the seeds' centroid.

    Seeds are never returned. A candidate or centroid with zero norm scores
    0.0; missing candidate values count as 0. Ties fall back to popularity,
    then to the order of ``candidates``.
    """
    centroid = compute_centroid(seeds)
    if n is not None and n <= 0:
        return []

    seed_ids = {seed.id for seed in seeds}
    pool = [track for track in candidates if track.id not in seed_ids]
    if not pool:
        return []

    matrix = np.nan_to_num(feature_matrix([track.features for track in pool]), nan=0.0)
    # normalize() leaves zero-norm rows at zero, which yields a 0.0 similarity.
    unit_rows = normalize(matrix)
    unit_centroid = normalize(centroid.reshape(1, -1))[0]
    # Rounded so parallel vectors tie exactly and fall through to popularity.
    scores = np.round(np.clip(unit_rows @ unit_centroid, -1.0, 1.0), SCORE_DECIMALS)

    ranked = sorted(
        zip(pool, (float(score) for score in scores)),
        key=lambda item: (item[1], item[0].popularity),
        reverse=True,
    )
    if n is not None:
        ranked = ranked[:n]
    return ranked
