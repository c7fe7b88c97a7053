from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import Base


class Song(Base):
    """Catalog row with precomputed cluster labels and audio features."""

    __tablename__ = "songs_with_clusters"

    song_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    artists: Mapped[str] = mapped_column(Text, nullable=False, default="")
    popularity: Mapped[int | None] = mapped_column(Integer)

    cluster1: Mapped[int | None] = mapped_column(Integer, index=True)
    cluster2: Mapped[int | None] = mapped_column(Integer, index=True)
    cluster3: Mapped[int | None] = mapped_column(Integer, index=True)
    cluster4: Mapped[int | None] = mapped_column(Integer, index=True)
    cluster5: Mapped[int | None] = mapped_column(Integer, index=True)

    danceability: Mapped[float | None] = mapped_column(Float)
    energy: Mapped[float | None] = mapped_column(Float)
    valence: Mapped[float | None] = mapped_column(Float)
    tempo: Mapped[float | None] = mapped_column(Float)
    acousticness: Mapped[float | None] = mapped_column(Float)
    speechiness: Mapped[float | None] = mapped_column(Float)
    instrumentalness: Mapped[float | None] = mapped_column(Float)
    liveness: Mapped[float | None] = mapped_column(Float)
    loudness: Mapped[float | None] = mapped_column(Float)

    @property
    def cluster_levels(self) -> tuple:
        return (self.cluster1, self.cluster2, self.cluster3, self.cluster4, self.cluster5)


class RecommendationQuery(Base):
    __tablename__ = "recommendation_queries"

    query_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer)
    strategy: Mapped[str] = mapped_column(String(16), nullable=False)
    level_used: Mapped[str | None] = mapped_column(String(64))
    match_degree: Mapped[str | None] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    seeds: Mapped[list["QuerySeed"]] = relationship(
        back_populates="query", cascade="all, delete-orphan", order_by="QuerySeed.seed_rank"
    )
    results: Mapped[list["QueryResult"]] = relationship(
        back_populates="query", cascade="all, delete-orphan", order_by="QueryResult.result_rank"
    )


class QuerySeed(Base):
    __tablename__ = "query_seeds"

    query_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recommendation_queries.query_id", ondelete="CASCADE"), primary_key=True
    )
    seed_rank: Mapped[int] = mapped_column(Integer, primary_key=True)
    song_id: Mapped[int] = mapped_column(Integer, nullable=False)

    query: Mapped[RecommendationQuery] = relationship(back_populates="seeds")


class QueryResult(Base):
    __tablename__ = "query_results"

    query_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recommendation_queries.query_id", ondelete="CASCADE"), primary_key=True
    )
    result_rank: Mapped[int] = mapped_column(Integer, primary_key=True)
    song_id: Mapped[int] = mapped_column(Integer, nullable=False)
    similarity: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    query: Mapped[RecommendationQuery] = relationship(back_populates="results")
