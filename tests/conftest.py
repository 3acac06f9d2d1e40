"""Shared fakes: an in-memory durable log, a tiny async Redis, and a stubbed provider."""

import asyncio
from collections import Counter
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from sercrow.core.settings import Settings
from sercrow.context import assemble_context
from sercrow.search.google_cse import GoogleSearchClient, GoogleSuggestClient
from sercrow.search.schema import SearchEntry
from sercrow.telemetry.accelerator import NullAccelerator, RedisAccelerator
from sercrow.wingman.status import WingmanStatus


# ---------------------------------------------------------------------------
# Durable log
# ---------------------------------------------------------------------------

class FakeDurableLog:
    def __init__(self, fail_writes: bool = False, fail_reads: bool = False):
        self.rows = []
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.disposed = False

    async def create_schema(self):
        return None

    async def append(self, entry):
        if self.fail_writes:
            raise RuntimeError("database is down")
        self.rows.append(entry)

    async def recent(self, limit=10):
        if self.fail_reads:
            raise RuntimeError("database is down")
        newest = list(enumerate(self.rows, start=1))[::-1][:limit]
        return [SearchEntry(id=str(i), query=e.query) for i, e in newest]

    async def popular(self, limit=10):
        if self.fail_reads:
            raise RuntimeError("database is down")
        counts = Counter(e.query for e in self.rows)
        return [SearchEntry(id=str(i), query=q) for i, (q, _) in enumerate(counts.most_common(limit))]

    async def ping(self):
        return not self.fail_reads

    async def dispose(self):
        self.disposed = True


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

def _redis_slice(items: list, start: int, end: int) -> list:
    n = len(items)
    if start < 0:
        start = max(0, n + start)
    if end < 0:
        end = n + end
    return items[start:end + 1]


class FakeRedis:
    """The handful of async commands the accelerator uses."""

    def __init__(self, fail: bool = False):
        self.lists: Dict[str, List[str]] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.fail = fail
        self.closed = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unreachable")

    async def ping(self):
        await asyncio.sleep(0)
        self._check()
        return True

    async def lpush(self, key, *values):
        self._check()
        lst = self.lists.setdefault(key, [])
        for v in values:
            lst.insert(0, v)
        return len(lst)

    async def ltrim(self, key, start, end):
        self._check()
        self.lists[key] = _redis_slice(self.lists.get(key, []), start, end)
        return True

    async def lrange(self, key, start, end):
        self._check()
        return _redis_slice(self.lists.get(key, []), start, end)

    async def zincrby(self, key, amount, member):
        self._check()
        zset = self.zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + amount
        return zset[member]

    async def zrevrange(self, key, start, end):
        self._check()
        zset = self.zsets.get(key, {})
        ordered = sorted(zset, key=lambda m: (-zset[m], m))
        return _redis_slice(ordered, start, end)

    async def zscore(self, key, member):
        self._check()
        return self.zsets.get(key, {}).get(member)

    async def aclose(self):
        self.closed = True


# ---------------------------------------------------------------------------
# Provider stub
# ---------------------------------------------------------------------------

def image_items(n: int) -> List[dict]:
    return [
        {
            "title": f"Rust image {i}",
            "link": f"https://images.example.org/rust-{i}.jpg",
            "snippet": f"Picture number {i}",
            "pagemap": {"cse_thumbnail": [{"src": f"https://thumbs.example.org/rust-{i}.jpg"}]},
        }
        for i in range(n)
    ]


def web_items(n: int) -> List[dict]:
    return [
        {"title": f"Result {i}", "link": f"https://site{i}.example.com/page", "snippet": f"Snippet {i}"}
        for i in range(n)
    ]


class StubProvider:
    """Records every outbound request and answers with a canned payload."""

    def __init__(self, payload: Optional[dict] = None, status_code: int = 200,
                 raise_exc: Optional[Callable[[httpx.Request], Exception]] = None):
        self.payload = payload if payload is not None else {
            "items": web_items(3),
            "searchInformation": {"totalResults": "3", "searchTime": 0.1},
        }
        self.status_code = status_code
        self.raise_exc = raise_exc
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def calls(self) -> int:
        return len(self.requests)


def make_search_client(provider: StubProvider, api_key: Optional[str] = "test-key",
                       engine_id: Optional[str] = "test-cx") -> GoogleSearchClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(provider))
    return GoogleSearchClient(api_key, engine_id, timeout=10.0, http=http)


def make_suggest_client(handler: Callable[[httpx.Request], httpx.Response]) -> GoogleSuggestClient:
    return GoogleSuggestClient(http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def make_context(provider: Optional[StubProvider] = None, durable=None, accelerator=None,
                 api_key: Optional[str] = "test-key", suggest_handler=None, **overrides):
    cfg = Settings(_env_file=None, database_url="postgresql://test/test", **overrides)
    provider = provider or StubProvider()
    suggest_handler = suggest_handler or (lambda request: httpx.Response(503))
    wingman = WingmanStatus(
        None, cfg.openrouter_model, cfg.openrouter_base_url,
        http=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200))),
    )
    return assemble_context(
        cfg,
        search_client=make_search_client(provider, api_key=api_key),
        suggest_client=make_suggest_client(suggest_handler),
        durable=durable if durable is not None else FakeDurableLog(),
        accelerator=accelerator if accelerator is not None else NullAccelerator(),
        wingman=wingman,
    )


@pytest.fixture()
def provider():
    return StubProvider()


@pytest.fixture()
def durable():
    return FakeDurableLog()


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture()
def redis_accelerator(fake_redis):
    return RedisAccelerator(lambda: fake_redis)
