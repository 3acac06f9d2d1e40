"""
Purpose:
- Single entry point for query telemetry: durable log first, accelerator second.
- Reads prefer the accelerator's view and fall back to the durable log.

Contract:
- record() never raises. Failures in either store are logged at error level and dropped.
- The two views may disagree (Redis is all-time, the log is what was written); that's accepted.
"""

from __future__ import annotations
import logging
from typing import List
from ..search.schema import QueryLogEntry, SearchEntry
from .accelerator import QueryAccelerator
from .durable import DurableQueryLog

logger = logging.getLogger(__name__)

class QueryTelemetryStore:
    def __init__(self, durable: DurableQueryLog, accelerator: QueryAccelerator):
        self.durable = durable
        self.accelerator = accelerator

    async def record(self, entry: QueryLogEntry) -> None:
        try:
            await self.durable.append(entry)
            logger.info(f"Logged search query to database: {entry.search_id}")
        except Exception as e:
            logger.error(f"Failed to log search query {entry.search_id}: {e}")

        try:
            await self.accelerator.record(entry.query)
        except Exception as e:
            logger.error(f"Failed to record search query in accelerator: {e}")

    async def recent_searches(self, limit: int = 10) -> List[SearchEntry]:
        try:
            fast = await self.accelerator.recent(limit)
        except Exception as e:
            logger.error(f"Accelerator recent searches failed: {e}")
            fast = []
        if fast:
            return fast[:limit]
        try:
            return await self.durable.recent(limit)
        except Exception as e:
            logger.error(f"Database recent searches failed: {e}")
            return []

    async def popular_searches(self, limit: int = 10) -> List[SearchEntry]:
        try:
            fast = await self.accelerator.popular(limit)
        except Exception as e:
            logger.error(f"Accelerator popular searches failed: {e}")
            fast = []
        if fast:
            return fast[:limit]
        try:
            return await self.durable.popular(limit)
        except Exception as e:
            logger.error(f"Database popular searches failed: {e}")
            return []
