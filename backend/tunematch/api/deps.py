from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache.redis import get_redis
from ..core.config import Settings, get_settings
from ..db.session import AsyncSessionFactory, get_session
from ..services.catalog import SqlCatalogStore
from ..services.history import HistorySink, RedisHistorySink, SqlHistorySink


async def get_settings_dep() -> Settings:
    return get_settings()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


async def get_redis_dep() -> AsyncIterator[Redis]:
    async for client in get_redis():
        yield client


async def get_catalog(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> SqlCatalogStore:
    return SqlCatalogStore(session, timeout=settings.catalog_timeout_seconds)


async def get_history_sink(
    settings: Settings = Depends(get_settings_dep),
    redis: Redis = Depends(get_redis_dep),
) -> HistorySink | None:
    if not settings.persist_history:
        return None
    if settings.history_backend == "redis":
        return RedisHistorySink(
            redis,
            key=settings.history_redis_key,
            max_entries=settings.history_redis_max_entries,
        )
    # Own session so a failed history write cannot roll back the catalog reads.
    return SqlHistorySink(AsyncSessionFactory)
