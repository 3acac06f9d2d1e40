"""
Purpose:
- Optional Redis accelerator for the recent/popular views.
  * recent_searches: capped list (LPUSH + LTRIM), deduplicated on read
  * popular_searches: sorted set, ZINCRBY 1 per executed query
- NullAccelerator stands in when Redis is not configured.

Contract:
- Best-effort only. Every Redis error is logged and swallowed; the caller sees
  "nothing recorded" / "empty view", exactly as if Redis were not configured.
"""

from __future__ import annotations
import asyncio
import json
import logging
import time
import uuid
from typing import Any, Callable, List, Optional
import redis.asyncio as redis
from ..core.settings import Settings
from ..search.schema import SearchEntry

logger = logging.getLogger(__name__)

RECENT_KEY = "recent_searches"
POPULAR_KEY = "popular_searches"

class QueryAccelerator:
    """Interface shared by the Redis-backed and the absent accelerator."""

    configured: bool = False

    async def record(self, query: str) -> None:
        raise NotImplementedError

    async def recent(self, limit: int = 10) -> List[SearchEntry]:
        raise NotImplementedError

    async def popular(self, limit: int = 10) -> List[SearchEntry]:
        raise NotImplementedError

    async def close(self) -> None:
        return None

class NullAccelerator(QueryAccelerator):
    async def record(self, query: str) -> None:
        return None

    async def recent(self, limit: int = 10) -> List[SearchEntry]:
        return []

    async def popular(self, limit: int = 10) -> List[SearchEntry]:
        return []

def dedupe_recent(raw_items: List[str], limit: int) -> List[SearchEntry]:
    """Parse stored JSON items (newest first) and keep the newest occurrence of each query."""
    seen = set()
    out: List[SearchEntry] = []
    for raw in raw_items:
        try:
            item = json.loads(raw)
            entry_id, query = str(item["id"]), item["query"]
        except (ValueError, TypeError, KeyError):
            continue
        if not isinstance(query, str) or query in seen:
            continue
        seen.add(query)
        out.append(SearchEntry(id=entry_id, query=query))
        if len(out) >= limit:
            break
    return out

class RedisAccelerator(QueryAccelerator):
    configured = True

    def __init__(self, client_factory: Callable[[], Any], recent_cap: int = 200):
        self._factory = client_factory
        self.recent_cap = recent_cap
        self._client: Optional[Any] = None
        self._connect_lock = asyncio.Lock()
        self._failed_attempts = 0

    async def _get_client(self) -> Optional[Any]:
        if self._client is not None:
            return self._client
        # one connection attempt at a time; late arrivals reuse its outcome
        failures_seen = self._failed_attempts
        async with self._connect_lock:
            if self._client is not None:
                return self._client
            if self._failed_attempts != failures_seen:
                # the attempt we queued behind just failed
                return None
            client = None
            try:
                client = self._factory()
                await client.ping()
            except Exception as e:
                logger.error(f"Failed to connect to Redis: {e}")
                self._failed_attempts += 1
                if client is not None:
                    await _quiet_close(client)
                return None
            logger.info("Connected to Redis")
            self._client = client
            return client

    async def record(self, query: str) -> None:
        client = await self._get_client()
        if client is None:
            return
        now = int(time.time() * 1000)
        item = json.dumps({
            "id": f"recent_{now}_{uuid.uuid4().hex[:8]}",
            "query": query,
            "timestamp": now,
        })
        try:
            await client.lpush(RECENT_KEY, item)
            await client.ltrim(RECENT_KEY, 0, self.recent_cap - 1)
            await client.zincrby(POPULAR_KEY, 1, query)
        except Exception as e:
            logger.error(f"Redis record error: {e}")

    async def recent(self, limit: int = 10) -> List[SearchEntry]:
        client = await self._get_client()
        if client is None:
            return []
        try:
            # read the whole capped list so duplicates don't starve the view
            items = await client.lrange(RECENT_KEY, 0, self.recent_cap - 1)
        except Exception as e:
            logger.error(f"Redis recent searches error: {e}")
            return []
        return dedupe_recent([_as_text(i) for i in items], limit)

    async def popular(self, limit: int = 10) -> List[SearchEntry]:
        client = await self._get_client()
        if client is None:
            return []
        try:
            members = await client.zrevrange(POPULAR_KEY, 0, max(0, limit - 1))
        except Exception as e:
            logger.error(f"Redis popular searches error: {e}")
            return []
        out = []
        for rank, m in enumerate(members):
            q = _as_text(m)
            out.append(SearchEntry(id=f"pop_{rank}_{q[:20]}", query=q))
        return out

    async def score(self, query: str) -> float:
        """Popularity score of one query (0 when unknown or unreachable)."""
        client = await self._get_client()
        if client is None:
            return 0.0
        try:
            value = await client.zscore(POPULAR_KEY, query)
        except Exception as e:
            logger.error(f"Redis score error: {e}")
            return 0.0
        return float(value or 0.0)

    async def close(self) -> None:
        if self._client is not None:
            await _quiet_close(self._client)
            self._client = None

def _as_text(value: Any) -> str:
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else str(value)

async def _quiet_close(client: Any) -> None:
    try:
        await client.aclose()
    except Exception as e:
        logger.warning(f"Redis close error: {e}")

def redis_factory_from_settings(cfg: Settings) -> Optional[Callable[[], Any]]:
    """REDIS_URL wins; otherwise host + port are both required. None means not configured."""
    if cfg.redis_url:
        def from_url():
            kwargs = {
                "decode_responses": True,
                "socket_connect_timeout": cfg.redis_connect_timeout_seconds,
                "socket_timeout": cfg.redis_socket_timeout_seconds,
            }
            if cfg.redis_database_id is not None:
                kwargs["db"] = cfg.redis_database_id
            return redis.Redis.from_url(cfg.redis_url, **kwargs)
        return from_url

    if not cfg.redis_host or not cfg.redis_port:
        return None

    def from_host():
        return redis.Redis(
            host=cfg.redis_host,
            port=cfg.redis_port,
            username=cfg.redis_username or None,
            password=cfg.redis_password or None,
            db=cfg.redis_database_id or 0,
            decode_responses=True,
            socket_connect_timeout=cfg.redis_connect_timeout_seconds,
            socket_timeout=cfg.redis_socket_timeout_seconds,
        )
    return from_host

def build_accelerator(cfg: Settings) -> QueryAccelerator:
    factory = redis_factory_from_settings(cfg)
    if factory is None:
        logger.info("Redis not configured - recent/popular views served from the database")
        return NullAccelerator()
    return RedisAccelerator(factory, recent_cap=cfg.recent_searches_cap)
