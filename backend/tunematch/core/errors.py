from __future__ import annotations

from typing import Any, Iterable, List


class RecommendationError(Exception):
    """Base class for failures surfaced by the recommendation engine.

    ``client_error`` tells the HTTP layer whether the caller can fix the
    request (4xx) or the failure is on our side (5xx).
    """

    client_error = True


class ValidationError(RecommendationError):
    """Malformed request: wrong seed count, duplicate seeds, negative ``n``."""


class SeedNotFoundError(RecommendationError):
    def __init__(self, missing_ids: Iterable[Any]) -> None:
        self.missing_ids: List[Any] = list(missing_ids)
        joined = ", ".join(str(track_id) for track_id in self.missing_ids)
        super().__init__(f"seed tracks not found in catalog: {joined}")


class NoConsensusError(RecommendationError):
    """Raised by strict cluster matching when no level has a 2- or 3-way match."""


class InsufficientFeatureDataError(RecommendationError):
    def __init__(self, features: Iterable[str]) -> None:
        self.features: List[str] = list(features)
        super().__init__(f"no seed provides a value for: {', '.join(self.features) or 'any feature'}")


class CatalogUnavailableError(RecommendationError):
    client_error = False
