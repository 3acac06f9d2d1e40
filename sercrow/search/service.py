"""
Purpose:
- The search "service" orchestrates cache -> provider -> normalize/fallback -> paginate
  -> telemetry -> cache populate -> response.
- Telemetry is scheduled, never awaited on the response path.
"""

from __future__ import annotations
import asyncio
import logging
import math
import time
import uuid
from typing import Optional, Set
from fastapi import BackgroundTasks
from .cache import ResultCache, SearchRequestKey
from .errors import EmptyQueryError, SearchFailed
from .fallback import fallback_results, filter_fallback_results
from .google_cse import GoogleSearchClient
from .normalize import normalize, total_results_of
from .schema import QueryLogEntry, SearchFilter, SearchResponse
from ..telemetry.store import QueryTelemetryStore

logger = logging.getLogger(__name__)

def total_pages_for(total_results: int, limit: int) -> int:
    if total_results <= 0:
        return 0
    return math.ceil(total_results / limit)

def new_search_id() -> str:
    return f"search_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

class SearchOrchestrator:
    def __init__(self, client: GoogleSearchClient, cache: ResultCache[SearchResponse],
                 telemetry: QueryTelemetryStore, default_limit: int = 10,
                 max_limit: int = 50, description_limit: int = 200):
        self.client = client
        self.cache = cache
        self.telemetry = telemetry
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.description_limit = description_limit
        self._pending: Set[asyncio.Task] = set()

    async def search(self, query: Optional[str], search_filter: Optional[str] = "all",
                     page: Optional[int] = 1, limit: Optional[int] = None,
                     background: Optional[BackgroundTasks] = None) -> SearchResponse:
        query = (query or "").strip()
        if not query:
            raise EmptyQueryError()

        facet = SearchFilter.parse(search_filter)
        if facet is None:
            logger.warning(f"Unknown filter {search_filter!r}, searching 'all'")
            facet = SearchFilter.ALL

        key = SearchRequestKey.build(query, facet, page, limit,
                                     default_limit=self.default_limit, max_limit=self.max_limit)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for: {query!r}")
            return cached

        try:
            response = await self._resolve(query, facet, key, background)
        except Exception as e:
            logger.exception(f"Search failed for {query!r}")
            raise SearchFailed("Internal server error during search") from e
        return response

    async def _resolve(self, query: str, facet: SearchFilter, key: SearchRequestKey,
                       background: Optional[BackgroundTasks]) -> SearchResponse:
        started = time.monotonic()
        logger.info(f"Processing search: {query!r} (filter: {facet.value}, page: {key.page})")

        start_index = (key.page - 1) * key.limit + 1
        data = await self.client.search(query, facet, start=start_index, count=key.limit)

        if data is not None:
            results = normalize(data, facet, description_limit=self.description_limit)
            total = total_results_of(data, default=len(results))
        else:
            logger.warning(f"Using fallback results for query: {query!r}")
            results = filter_fallback_results(fallback_results(query, facet), facet)
            total = len(results)

        search_time = int((time.monotonic() - started) * 1000)
        response = SearchResponse(
            results=results,
            total_results=total,
            search_time=search_time,
            current_page=key.page,
            total_pages=total_pages_for(total, key.limit),
            query=query,
            filter=facet,
            search_id=new_search_id(),
        )

        self._schedule_telemetry(QueryLogEntry(
            search_id=response.search_id,
            query=query,
            filter=facet.value,
            results_count=len(results),
            search_time=search_time,
        ), background)

        self.cache.set(key, response)
        return response

    def _schedule_telemetry(self, entry: QueryLogEntry, background: Optional[BackgroundTasks]) -> None:
        if background is not None:
            background.add_task(self._record_safely, entry)
            return
        task = asyncio.create_task(self._record_safely(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_safely(self, entry: QueryLogEntry) -> None:
        try:
            await self.telemetry.record(entry)
        except Exception as e:
            logger.error(f"Telemetry write failed for {entry.search_id}: {e}")

    async def drain(self) -> None:
        """Wait for detached telemetry writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
