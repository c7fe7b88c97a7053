from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db import models
from .tracks import TrackId

logger = logging.getLogger("history")


@dataclass(frozen=True, slots=True)
class HistoryRecord:
    seed_ids: Tuple[TrackId, ...]
    strategy: str
    result_ids: Tuple[TrackId, ...]
    similarities: Tuple[float, ...]
    level_used: Optional[str] = None
    match_degree: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["seed_ids"] = list(self.seed_ids)
        payload["result_ids"] = list(self.result_ids)
        payload["similarities"] = list(self.similarities)
        payload["created_at"] = self.created_at.isoformat()
        return payload


class HistorySink(Protocol):
    async def record(self, entry: HistoryRecord) -> None:
        ...


class SqlHistorySink:
    """Writes the query, its seeds and its ranked results in one transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def record(self, entry: HistoryRecord) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                query = models.RecommendationQuery(
                    user_id=entry.user_id,
                    strategy=entry.strategy,
                    level_used=entry.level_used,
                    match_degree=entry.match_degree,
                    created_at=entry.created_at,
                )
                query.seeds = [
                    models.QuerySeed(seed_rank=rank, song_id=song_id)
                    for rank, song_id in enumerate(entry.seed_ids, start=1)
                ]
                query.results = [
                    models.QueryResult(result_rank=rank, song_id=song_id, similarity=similarity)
                    for rank, (song_id, similarity) in enumerate(zip(entry.result_ids, entry.similarities), start=1)
                ]
                session.add(query)


class RedisHistorySink:
    def __init__(self, redis: Redis, *, key: str, max_entries: int) -> None:
        self.redis = redis
        self.key = key
        self.max_entries = max_entries

    async def record(self, entry: HistoryRecord) -> None:
        await self.redis.rpush(self.key, json.dumps(entry.as_dict()))
        if self.max_entries:
            await self.redis.ltrim(self.key, -self.max_entries, -1)


async def record_history(sink: HistorySink | None, entry: HistoryRecord) -> bool:
    """Best-effort write; a failing sink never fails the recommendation."""
    if sink is None:
        return False
    try:
        await sink.record(entry)
    except Exception as exc:
        logger.warning("Failed to record %s query for seeds %s: %s", entry.strategy, list(entry.seed_ids), exc)
        return False
    return True
