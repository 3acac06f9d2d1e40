"""
Purpose:
- Append-only Postgres log of every served search (authoritative, mandatory).
- Derives recent/popular views when the auxiliary store has nothing to offer.

Notes:
- One INSERT per request, no multi-row transactions; rows are never updated or deleted.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import DateTime, Integer, String, Text, desc, func, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ..search.schema import QueryLogEntry, SearchEntry

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

class SearchQueryLog(Base):
    """One row per served search request, cache hits excluded."""

    __tablename__ = "search_queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    search_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    query: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    filter: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, default="all")
    results_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    search_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

class DurableQueryLog:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> "DurableQueryLog":
        return cls(create_async_engine(url, pool_pre_ping=True))

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def append(self, entry: QueryLogEntry) -> None:
        async with self._sessions() as session:
            session.add(SearchQueryLog(
                search_id=entry.search_id,
                query=entry.query,
                filter=entry.filter,
                results_count=entry.results_count,
                search_time=entry.search_time,
                timestamp=entry.timestamp,
            ))
            await session.commit()

    async def recent(self, limit: int = 10) -> List[SearchEntry]:
        stmt = (
            select(SearchQueryLog.id, SearchQueryLog.query)
            .order_by(desc(SearchQueryLog.timestamp))
            .limit(limit)
        )
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).all()
        return [SearchEntry(id=str(r.id), query=r.query) for r in rows]

    async def popular(self, limit: int = 10) -> List[SearchEntry]:
        # most frequent (query, filter) pairs; id is the latest row of the group
        hits = func.count().label("hits")
        stmt = (
            select(func.max(SearchQueryLog.id).label("id"), SearchQueryLog.query, hits)
            .group_by(SearchQueryLog.query, SearchQueryLog.filter)
            .order_by(desc(hits))
            .limit(limit)
        )
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).all()
        return [SearchEntry(id=str(r.id), query=r.query) for r in rows]

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database ping failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
