from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Iterable, List, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tunematch.core.config import Settings
from tunematch.services.features import FEATURE_KEYS
from tunematch.services.tracks import Track


def make_track(
    track_id: Any,
    *,
    clusters: Sequence[Any] = (0, 0, 0, 0, 0),
    popularity: float = 0,
    features: Sequence[float | None] | None = None,
    name: str | None = None,
) -> Track:
    return Track(
        id=track_id,
        name=name or f"Song {track_id}",
        artists=f"Artist {track_id}",
        popularity=popularity,
        cluster_levels=tuple(clusters),
        features=tuple(features) if features is not None else tuple(0.5 for _ in FEATURE_KEYS),
    )


class StubCatalog:
    def __init__(self, tracks: Iterable[Track]) -> None:
        self.tracks: List[Track] = list(tracks)
        self.calls: List[str] = []

    async def get_by_ids(self, ids: Iterable[Any]) -> List[Track]:
        self.calls.append("get_by_ids")
        wanted = set(ids)
        # Reverse to mimic a store that does not preserve request order.
        return [track for track in reversed(self.tracks) if track.id in wanted]

    async def get_all(self, limit: int) -> List[Track]:
        self.calls.append("get_all")
        return self.tracks[:limit]

    async def search(self, query: str, limit: int) -> List[Track]:
        self.calls.append("search")
        needle = query.lower()
        return [t for t in self.tracks if needle in t.name.lower() or needle in t.artists.lower()][:limit]

    async def count(self) -> int:
        return len(self.tracks)


class RecordingHistory:
    def __init__(self) -> None:
        self.records: list = []

    async def record(self, entry) -> None:
        self.records.append(entry)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, persist_history=True)
