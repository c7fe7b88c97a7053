from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, List, Protocol, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import CatalogUnavailableError
from ..db import models
from .features import FEATURE_KEYS, features_from_mapping
from .tracks import Track, TrackId

logger = logging.getLogger("catalog")

T = TypeVar("T")


class CatalogStore(Protocol):
    """Read-only view of the track catalog used by the engine."""

    async def get_by_ids(self, ids: Iterable[TrackId]) -> List[Track]:
        ...

    async def get_all(self, limit: int) -> List[Track]:
        ...

    async def search(self, query: str, limit: int) -> List[Track]:
        ...

    async def count(self) -> int:
        ...


def track_from_song(song: models.Song) -> Track:
    return Track(
        id=song.song_id,
        name=song.name,
        artists=song.artists or "",
        popularity=max(float(song.popularity or 0), 0.0),
        cluster_levels=song.cluster_levels,
        features=features_from_mapping({key: getattr(song, key) for key in FEATURE_KEYS}),
    )


class SqlCatalogStore:
    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = timeout

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            if self.timeout:
                return await asyncio.wait_for(awaitable, timeout=self.timeout)
            return await awaitable
        except asyncio.TimeoutError as exc:
            logger.error("Catalog %s timed out after %ss", operation, self.timeout)
            raise CatalogUnavailableError(f"catalog {operation} timed out") from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Catalog %s failed: %s", operation, exc)
            raise CatalogUnavailableError(f"catalog {operation} failed: {exc}") from exc

    async def _scalars(self, operation: str, stmt: Any) -> List[models.Song]:
        async def execute() -> List[models.Song]:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(operation, execute())

    async def get_by_ids(self, ids: Iterable[TrackId]) -> List[Track]:
        id_list = list(ids)
        if not id_list:
            return []
        stmt = select(models.Song).where(models.Song.song_id.in_(id_list))
        songs = await self._scalars("lookup", stmt)
        return [track_from_song(song) for song in songs]

    async def get_all(self, limit: int) -> List[Track]:
        stmt = select(models.Song).order_by(models.Song.song_id).limit(limit)
        songs = await self._scalars("scan", stmt)
        if len(songs) == limit:
            logger.debug("Catalog scan reached limit of %s rows", limit)
        return [track_from_song(song) for song in songs]

    async def search(self, query: str, limit: int) -> List[Track]:
        needle = query.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{needle}%"
        stmt = (
            select(models.Song)
            .where(
                or_(
                    func.lower(models.Song.name).like(pattern, escape="\\"),
                    func.lower(models.Song.artists).like(pattern, escape="\\"),
                )
            )
            .order_by(models.Song.song_id)
            .limit(limit)
        )
        songs = await self._scalars("search", stmt)
        return [track_from_song(song) for song in songs]

    async def count(self) -> int:
        async def execute() -> int:
            result = await self.session.execute(select(func.count()).select_from(models.Song))
            return int(result.scalar_one())

        return await self._run("count", execute())
