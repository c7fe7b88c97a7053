from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..services.clustering import MatchDegree
from ..services.recommendations import RankedTrack
from ..services.tracks import Track


class ClusterRecommendRequest(BaseModel):
    seed_ids: List[int] = Field(..., description="Exactly three distinct catalog track ids")
    n: Optional[int] = Field(default=None, ge=0)
    user_id: Optional[int] = None


class SimilarityRecommendRequest(BaseModel):
    seed_ids: List[int] = Field(..., description="One or more catalog track ids")
    n: Optional[int] = Field(default=None, ge=0)
    user_id: Optional[int] = None


class TrackOut(BaseModel):
    id: int
    name: str
    artists: str
    popularity: float

    @classmethod
    def from_track(cls, track: Track) -> "TrackOut":
        return cls(id=track.id, name=track.name, artists=track.artists, popularity=track.popularity)


class ClusterRecommendResponse(BaseModel):
    strategy: Literal["cluster"] = "cluster"
    recommendations: List[TrackOut] = []
    level_used: str
    shared_value: Optional[Union[int, str]] = None
    match_degree: MatchDegree


class SimilarityItem(BaseModel):
    rank: int
    track: TrackOut
    similarity: float = Field(..., ge=-1.0, le=1.0)

    @classmethod
    def from_ranked(cls, item: RankedTrack) -> "SimilarityItem":
        return cls(rank=item.rank, track=TrackOut.from_track(item.track), similarity=item.similarity)


class SimilarityRecommendResponse(BaseModel):
    strategy: Literal["similarity"] = "similarity"
    recommendations: List[SimilarityItem] = []


class SearchResult(BaseModel):
    id: int
    name: str
    artists: str


class SearchResponse(BaseModel):
    results: List[SearchResult] = []


class HealthResponse(BaseModel):
    ok: bool = True
    catalog_size: int = 0
