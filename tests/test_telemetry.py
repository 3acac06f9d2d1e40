"""Tests for the durable-first telemetry store and the Redis accelerator."""

import asyncio
import json

from sercrow.core.settings import Settings
from sercrow.search.schema import QueryLogEntry
from sercrow.telemetry.accelerator import (
    NullAccelerator,
    RedisAccelerator,
    build_accelerator,
    dedupe_recent,
    redis_factory_from_settings,
)
from sercrow.telemetry.store import QueryTelemetryStore

from conftest import FakeDurableLog, FakeRedis


def run(coro):
    return asyncio.run(coro)


def entry(query: str, n: int = 0) -> QueryLogEntry:
    return QueryLogEntry(search_id=f"search_{query}_{n}", query=query, filter="all", results_count=2)


# ---------------------------------------------------------------------------
# Redis accelerator
# ---------------------------------------------------------------------------

class TestRedisAccelerator:
    def test_recent_dedupes_keeping_latest_position(self, redis_accelerator):
        async def scenario():
            await redis_accelerator.record("cats")
            await redis_accelerator.record("dogs")
            await redis_accelerator.record("cats")
            await redis_accelerator.record("cats")
            return await redis_accelerator.recent(10)

        out = run(scenario())
        assert [e.query for e in out] == ["cats", "dogs"]

    def test_duplicates_coexist_in_storage(self, fake_redis, redis_accelerator):
        async def scenario():
            for _ in range(3):
                await redis_accelerator.record("cats")

        run(scenario())
        assert len(fake_redis.lists["recent_searches"]) == 3
        assert all(json.loads(i)["query"] == "cats" for i in fake_redis.lists["recent_searches"])

    def test_list_trimmed_to_cap(self, fake_redis):
        acc = RedisAccelerator(lambda: fake_redis, recent_cap=5)

        async def scenario():
            for i in range(12):
                await acc.record(f"q{i}")

        run(scenario())
        stored = [json.loads(i)["query"] for i in fake_redis.lists["recent_searches"]]
        assert stored == ["q11", "q10", "q9", "q8", "q7"]

    def test_recent_respects_limit(self, redis_accelerator):
        async def scenario():
            for i in range(6):
                await redis_accelerator.record(f"q{i}")
            return await redis_accelerator.recent(3)

        assert [e.query for e in run(scenario())] == ["q5", "q4", "q3"]

    def test_popularity_ranking_and_monotonic_score(self, redis_accelerator):
        async def scenario():
            scores = []
            for _ in range(4):
                await redis_accelerator.record("rust")
                scores.append(await redis_accelerator.score("rust"))
            await redis_accelerator.record("go")
            return scores, await redis_accelerator.popular(10)

        scores, popular = run(scenario())
        assert scores == sorted(scores)
        assert scores[-1] == 4.0
        assert [e.query for e in popular] == ["rust", "go"]
        assert popular[0].id == "pop_0_rust"

    def test_connects_once_under_concurrency(self):
        created = []

        def factory():
            client = FakeRedis()
            created.append(client)
            return client

        acc = RedisAccelerator(factory)

        async def scenario():
            await asyncio.gather(acc.recent(5), acc.popular(5), acc.record("x"), acc.record("y"))

        run(scenario())
        assert len(created) == 1

    def test_unreachable_redis_behaves_as_empty(self):
        acc = RedisAccelerator(lambda: FakeRedis(fail=True))

        async def scenario():
            await acc.record("cats")
            return await acc.recent(10), await acc.popular(10), await acc.score("cats")

        assert run(scenario()) == ([], [], 0.0)

    def test_failed_connection_is_retried_later(self):
        clients = [FakeRedis(fail=True), FakeRedis()]
        acc = RedisAccelerator(lambda: clients.pop(0))

        async def scenario():
            await acc.record("first")  # connection fails, dropped
            await acc.record("second")
            return await acc.recent(10)

        assert [e.query for e in run(scenario())] == ["second"]

    def test_failed_attempt_shared_by_queued_callers(self):
        created = []

        def factory():
            client = FakeRedis(fail=True)
            created.append(client)
            return client

        acc = RedisAccelerator(factory)

        async def scenario():
            return await asyncio.gather(acc.recent(10), acc.recent(10), acc.popular(10))

        assert run(scenario()) == [[], [], []]
        assert len(created) == 1

    def test_close_releases_client(self, fake_redis, redis_accelerator):
        async def scenario():
            await redis_accelerator.record("x")
            await redis_accelerator.close()

        run(scenario())
        assert fake_redis.closed is True

    def test_dedupe_skips_garbage(self):
        raw = ["not json", json.dumps({"query": "no id"}), json.dumps({"id": "a", "query": "ok"})]
        assert [e.query for e in dedupe_recent(raw, 10)] == ["ok"]


class TestAcceleratorSelection:
    def test_not_configured_gives_null(self):
        assert isinstance(build_accelerator(Settings(_env_file=None)), NullAccelerator)

    def test_host_without_port_is_not_configured(self):
        assert redis_factory_from_settings(Settings(_env_file=None, redis_host="localhost")) is None

    def test_url_configures_redis(self):
        acc = build_accelerator(Settings(_env_file=None, redis_url="redis://localhost:6379/0"))
        assert isinstance(acc, RedisAccelerator)
        assert acc.configured is True

    def test_host_and_port_configure_redis(self):
        cfg = Settings(_env_file=None, redis_host="cache", redis_port=6380, redis_password="pw")
        assert isinstance(build_accelerator(cfg), RedisAccelerator)

    def test_url_client_has_socket_timeouts(self):
        cfg = Settings(_env_file=None, redis_url="redis://localhost:6379/0", redis_connect_timeout_seconds=2.0)
        kwargs = redis_factory_from_settings(cfg)().connection_pool.connection_kwargs
        assert kwargs["socket_connect_timeout"] == 2.0
        assert kwargs["socket_timeout"] == cfg.redis_socket_timeout_seconds

    def test_host_client_has_socket_timeouts(self):
        cfg = Settings(_env_file=None, redis_host="cache", redis_port=6380)
        kwargs = redis_factory_from_settings(cfg)().connection_pool.connection_kwargs
        assert kwargs["socket_connect_timeout"] == 3.0
        assert kwargs["socket_timeout"] == 3.0


# ---------------------------------------------------------------------------
# Telemetry store
# ---------------------------------------------------------------------------

class TestQueryTelemetryStore:
    def test_record_writes_durable_and_accelerator(self, durable, fake_redis, redis_accelerator):
        store = QueryTelemetryStore(durable, redis_accelerator)
        run(store.record(entry("cats")))
        assert [r.query for r in durable.rows] == ["cats"]
        assert fake_redis.zsets["popular_searches"]["cats"] == 1

    def test_durable_write_survives_accelerator_failure(self, durable):
        store = QueryTelemetryStore(durable, RedisAccelerator(lambda: FakeRedis(fail=True)))
        run(store.record(entry("cats")))
        assert len(durable.rows) == 1

    def test_durable_failure_is_swallowed_and_accelerator_still_updated(self, fake_redis, redis_accelerator):
        store = QueryTelemetryStore(FakeDurableLog(fail_writes=True), redis_accelerator)
        run(store.record(entry("cats")))  # does not raise
        assert fake_redis.zsets["popular_searches"]["cats"] == 1

    def test_reads_prefer_accelerator(self, durable, redis_accelerator):
        store = QueryTelemetryStore(durable, redis_accelerator)
        run(redis_accelerator.record("from-redis"))
        durable.rows.append(entry("from-db"))
        assert [e.query for e in run(store.recent_searches(10))] == ["from-redis"]
        assert [e.query for e in run(store.popular_searches(10))] == ["from-redis"]

    def test_reads_fall_back_to_durable_when_accelerator_empty(self, durable):
        store = QueryTelemetryStore(durable, NullAccelerator())
        for i, q in enumerate(["a", "b", "a"]):
            run(store.record(entry(q, i)))
        assert [e.query for e in run(store.recent_searches(10))] == ["a", "b", "a"]
        assert [e.query for e in run(store.popular_searches(10))][0] == "a"

    def test_reads_fall_back_when_accelerator_unreachable(self, durable):
        store = QueryTelemetryStore(durable, RedisAccelerator(lambda: FakeRedis(fail=True)))
        durable.rows.append(entry("db-only"))
        assert [e.query for e in run(store.recent_searches(10))] == ["db-only"]

    def test_everything_down_yields_empty_views(self):
        store = QueryTelemetryStore(FakeDurableLog(fail_reads=True), NullAccelerator())
        assert run(store.recent_searches(10)) == []
        assert run(store.popular_searches(10)) == []
