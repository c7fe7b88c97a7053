from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

# Fixed order shared by every track in the catalog.
FEATURE_KEYS: Tuple[str, ...] = (
    "danceability",
    "energy",
    "valence",
    "tempo",
    "acousticness",
    "speechiness",
    "instrumentalness",
    "liveness",
    "loudness",
)

FeatureTuple = Tuple[Optional[float], ...]


def _coerce_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(result):
        return None
    return result


def features_from_mapping(mapping: Mapping[str, Any] | None) -> FeatureTuple:
    """Read the audio features out of ``mapping`` in catalog order.

    Absent or non-numeric values come back as ``None`` so callers can tell a
    missing feature from a genuine zero.
    """
    data = mapping or {}
    return tuple(_coerce_float(data.get(key)) for key in FEATURE_KEYS)


def feature_matrix(rows: Sequence[FeatureTuple]) -> np.ndarray:
    """Stack feature tuples into a float matrix with NaN marking missing values.

    Non-finite values are treated as missing.
    """
    if not rows:
        return np.empty((0, len(FEATURE_KEYS)), dtype=np.float64)
    matrix = np.array(
        [[np.nan if value is None else value for value in row] for row in rows],
        dtype=np.float64,
    )
    matrix[~np.isfinite(matrix)] = np.nan
    return matrix
