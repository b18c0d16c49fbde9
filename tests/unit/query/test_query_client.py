"""Tests for the client query cache."""

from __future__ import annotations

import asyncio

import pytest

from tessera.cache.keys import QueryKeys
from tessera.query.client import QueryClient, hash_key


class TestHashKey:
    """Test stable key hashing."""

    def test_dict_segment_order_is_irrelevant(self) -> None:
        """Filter dicts hash the same regardless of insertion order."""
        assert hash_key(("tasks", "ws1", {"a": 1, "b": 2})) == hash_key(
            ("tasks", "ws1", {"b": 2, "a": 1})
        )

    def test_different_keys_differ(self) -> None:
        """Distinct keys hash differently."""
        assert hash_key(("tasks", "ws1")) != hash_key(("tasks", "ws2"))


class TestQueryClient:
    """Test query caching and invalidation."""

    @pytest.fixture
    def client(self, clock) -> QueryClient:
        return QueryClient(stale_time=180.0, gc_time=300.0, clock=clock)

    async def test_fetch_query_caches_result(self, client: QueryClient) -> None:
        """A fresh query is served without calling the fetch function again."""
        calls = 0

        async def load() -> list[str]:
            nonlocal calls
            calls += 1
            return ["t1"]

        assert await client.fetch_query(QueryKeys.tasks("ws1"), load) == ["t1"]
        assert await client.fetch_query(QueryKeys.tasks("ws1"), load) == ["t1"]
        assert calls == 1

    async def test_refetches_when_stale(self, client: QueryClient, clock) -> None:
        """Queries older than the stale time are fetched again."""
        calls = 0

        async def load() -> int:
            nonlocal calls
            calls += 1
            return calls

        await client.fetch_query(("projects", "ws1"), load)
        clock.advance(180.0)
        assert await client.fetch_query(("projects", "ws1"), load) == 2

    async def test_per_call_stale_time(self, client: QueryClient, clock) -> None:
        """A per-call stale time overrides the default."""

        async def load() -> str:
            return "v"

        await client.fetch_query(("attendance",), load, stale_time=30.0)
        clock.advance(31.0)
        assert client.is_stale(("attendance",), stale_time=30.0)
        assert not client.is_stale(("attendance",))

    async def test_fetch_after_invalidation_refetches(self, client: QueryClient) -> None:
        """Invalidation forces the next read to recompute."""
        data = {"status": "open"}

        async def load() -> dict[str, str]:
            return dict(data)

        key = QueryKeys.project("p1")
        await client.fetch_query(key, load)
        data["status"] = "closed"
        client.invalidate_queries(key, exact=True)

        assert await client.fetch_query(key, load) == {"status": "closed"}

    def test_prefix_invalidation(self, client: QueryClient) -> None:
        """A prefix invalidates every key below it and nothing else."""
        client.set_query_data(QueryKeys.tasks("ws1"), [])
        client.set_query_data(QueryKeys.tasks("ws1", "p1"), [])
        client.set_query_data(QueryKeys.tasks("ws1", {"status": "todo"}), [])
        client.set_query_data(QueryKeys.tasks("ws2"), [])

        assert client.invalidate_queries(("tasks", "ws1")) == 3
        assert client.is_stale(QueryKeys.tasks("ws1", "p1"))
        assert not client.is_stale(QueryKeys.tasks("ws2"))

    def test_exact_invalidation(self, client: QueryClient) -> None:
        """exact=True only matches the identical key."""
        client.set_query_data(("projects", "ws1"), [])
        client.set_query_data(("projects", "ws1", "archived"), [])

        assert client.invalidate_queries(("projects", "ws1"), exact=True) == 1
        assert not client.is_stale(("projects", "ws1", "archived"))

    def test_empty_prefix_invalidates_everything(self, client: QueryClient) -> None:
        """The empty prefix matches all queries."""
        client.set_query_data(("a",), 1)
        client.set_query_data(("b", "c"), 2)
        assert client.invalidate_queries() == 2

    def test_get_query_data_ignores_freshness(self, client: QueryClient) -> None:
        """Invalidated data is still readable without a fetch."""
        client.set_query_data(("current",), {"name": "Ada"})
        client.invalidate_queries(("current",))
        assert client.get_query_data(("current",)) == {"name": "Ada"}

    async def test_invalidation_during_fetch_marks_result_stale(
        self, client: QueryClient
    ) -> None:
        """A result fetched across an invalidation is not trusted afterwards."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_load() -> str:
            started.set()
            await release.wait()
            return "old"

        key = QueryKeys.tasks("ws1")
        task = asyncio.create_task(client.fetch_query(key, slow_load))
        await started.wait()
        client.invalidate_queries(("tasks", "ws1"))
        release.set()

        assert await task == "old"
        assert client.is_stale(key)

    async def test_unrelated_invalidation_during_fetch(self, client: QueryClient) -> None:
        """Invalidating another key does not affect an in-flight fetch."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_load() -> str:
            started.set()
            await release.wait()
            return "fresh"

        key = QueryKeys.tasks("ws1")
        task = asyncio.create_task(client.fetch_query(key, slow_load))
        await started.wait()
        client.invalidate_queries(("leads", "ws1"))
        release.set()

        await task
        assert not client.is_stale(key)

    def test_remove_queries(self, client: QueryClient) -> None:
        """remove_queries drops matching entries entirely."""
        client.set_query_data(("leads", "ws1"), [])
        client.set_query_data(("lead", "l1"), {})
        assert client.remove_queries(("leads",)) == 1
        assert client.get_query_state(("leads", "ws1")) is None
        assert len(client) == 1

    async def test_gc_drops_unused_queries(self, client: QueryClient, clock) -> None:
        """Queries unused for gc_time are collected."""

        async def load() -> str:
            return "v"

        client.set_query_data(("old",), 1)
        clock.advance(200.0)
        await client.fetch_query(("recent",), load)
        clock.advance(100.0)

        assert client.gc() == 1
        assert client.get_query_state(("old",)) is None
        assert client.get_query_state(("recent",)) is not None
