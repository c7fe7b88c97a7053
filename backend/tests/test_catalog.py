from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

pytest.importorskip("aiosqlite")

from tunematch.core.errors import CatalogUnavailableError
from tunematch.db import models
from tunematch.db.base import Base
from tunematch.services.catalog import SqlCatalogStore, track_from_song
from tunematch.services.history import HistoryRecord, SqlHistorySink


def _song(song_id: int, **overrides) -> models.Song:
    values = dict(
        song_id=song_id,
        name=f"Song {song_id}",
        artists=f"Artist {song_id}",
        popularity=song_id * 10,
        cluster1=1,
        cluster2=2,
        cluster3=3,
        cluster4=4,
        cluster5=5,
        danceability=0.5,
        energy=0.6,
        valence=0.4,
        tempo=118.0,
        acousticness=0.1,
        speechiness=0.04,
        instrumentalness=0.0,
        liveness=0.12,
        loudness=-7.5,
    )
    values.update(overrides)
    return models.Song(**values)


async def _make_db(tmp_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:
        session.add_all(
            [
                _song(3, name="Harbour Lights"),
                _song(1, name="Night Drive", artists="The Lamps"),
                _song(2, name="Morning", artists="Night Owls", popularity=None, energy=None),
            ]
        )
        await session.commit()
    return engine, maker


def test_track_from_song_orders_levels_and_features() -> None:
    track = track_from_song(_song(7, cluster3=99, tempo=None, popularity=None))
    assert track.id == 7
    assert track.cluster_levels == (1, 2, 99, 4, 5)
    assert track.features == (0.5, 0.6, 0.4, None, 0.1, 0.04, 0.0, 0.12, -7.5)
    assert track.popularity == 0.0


def test_sql_catalog_reads(tmp_path: Path) -> None:
    async def scenario():
        engine, maker = await _make_db(tmp_path)
        async with maker() as session:
            store = SqlCatalogStore(session, timeout=5)
            by_id = await store.get_by_ids([2, 3, 404])
            scan = await store.get_all(limit=2)
            full = await store.get_all(limit=10)
            hits = await store.search("NIGHT", limit=15)
            size = await store.count()
            empty = await store.get_by_ids([])
        await engine.dispose()
        return by_id, scan, full, hits, size, empty

    by_id, scan, full, hits, size, empty = asyncio.run(scenario())
    assert sorted(track.id for track in by_id) == [2, 3]
    assert [track.id for track in scan] == [1, 2]
    assert [track.id for track in full] == [1, 2, 3]
    assert [track.id for track in hits] == [1, 2]
    assert size == 3
    assert empty == []
    morning = next(track for track in by_id if track.id == 2)
    assert morning.features[1] is None
    assert morning.popularity == 0.0


class _BrokenSession:
    async def execute(self, stmt):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


class _SlowSession:
    async def execute(self, stmt):
        await asyncio.sleep(1)


def test_store_errors_become_catalog_unavailable() -> None:
    store = SqlCatalogStore(_BrokenSession())
    with pytest.raises(CatalogUnavailableError):
        asyncio.run(store.get_all(limit=10))


def test_store_timeouts_become_catalog_unavailable() -> None:
    store = SqlCatalogStore(_SlowSession(), timeout=0.01)
    with pytest.raises(CatalogUnavailableError) as excinfo:
        asyncio.run(store.get_by_ids([1]))
    assert excinfo.value.client_error is False


def test_sql_history_sink_writes_query_seeds_and_results(tmp_path: Path) -> None:
    async def scenario():
        engine, maker = await _make_db(tmp_path)
        sink = SqlHistorySink(maker)
        await sink.record(
            HistoryRecord(
                seed_ids=(1, 2, 3),
                strategy="cluster",
                result_ids=(9, 8),
                similarities=(1.0, 1.0),
                level_used="cluster2",
                match_degree="TWO_OF_THREE",
                user_id=12,
            )
        )
        async with maker() as session:
            query = (await session.execute(select(models.RecommendationQuery))).scalar_one()
            seeds = (await session.execute(select(models.QuerySeed).order_by(models.QuerySeed.seed_rank))).scalars().all()
            results = (
                await session.execute(select(models.QueryResult).order_by(models.QueryResult.result_rank))
            ).scalars().all()
        await engine.dispose()
        return query, seeds, results

    query, seeds, results = asyncio.run(scenario())
    assert query.user_id == 12
    assert query.strategy == "cluster"
    assert query.level_used == "cluster2"
    assert query.match_degree == "TWO_OF_THREE"
    assert [(seed.seed_rank, seed.song_id) for seed in seeds] == [(1, 1), (2, 2), (3, 3)]
    assert [(row.result_rank, row.song_id, row.similarity) for row in results] == [(1, 9, 1.0), (2, 8, 1.0)]


def test_search_treats_wildcards_literally(tmp_path: Path) -> None:
    async def scenario():
        engine, maker = await _make_db(tmp_path)
        async with maker() as session:
            session.add_all([_song(4, name="100% Pure"), _song(5, name="Under_score")])
            await session.commit()
            store = SqlCatalogStore(session)
            percent = await store.search("%", limit=15)
            underscore = await store.search("_", limit=15)
            plain = await store.search("100%", limit=15)
        await engine.dispose()
        return percent, underscore, plain

    percent, underscore, plain = asyncio.run(scenario())
    assert [track.id for track in percent] == [4]
    assert [track.id for track in underscore] == [5]
    assert [track.id for track in plain] == [4]
