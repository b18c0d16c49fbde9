"""Tests for the scoped set cache."""

from __future__ import annotations

import pytest

from tessera.cache.scoped import ScopedSetCache
from tessera.cache.store import CacheConfig


class TestScopedSetCache:
    """Test per-scope identifier sets."""

    @pytest.fixture
    def cache(self, clock) -> ScopedSetCache:
        return ScopedSetCache(CacheConfig(ttl=120.0, max_size=10), name="closed", clock=clock)

    def test_set_then_get(self, cache: ScopedSetCache) -> None:
        """Stored members are returned for the scope."""
        cache.set("ws1", ["p1", "p2"])
        assert cache.get("ws1") == {"p1", "p2"}

    def test_unknown_scope(self, cache: ScopedSetCache) -> None:
        """Unknown scopes return None, not an empty set."""
        assert cache.get("ws1") is None

    def test_empty_set_is_cached(self, cache: ScopedSetCache) -> None:
        """A scope with no members is a valid cached answer."""
        cache.set("ws1", [])
        assert cache.get("ws1") == frozenset()

    def test_invalidate_is_immediate(self, cache: ScopedSetCache) -> None:
        """Invalidating a scope makes it absent well within the TTL."""
        cache.set("ws1", {"p1"})
        cache.invalidate("ws1")
        assert cache.get("ws1") is None

    def test_invalidate_leaves_other_scopes(self, cache: ScopedSetCache) -> None:
        """Only the named scope is dropped."""
        cache.set("ws1", {"p1"})
        cache.set("ws2", {"p2"})
        cache.invalidate("ws1")
        assert cache.get("ws2") == {"p2"}

    def test_caller_mutation_does_not_alias(self, cache: ScopedSetCache) -> None:
        """Changing the caller's set after storing it does not change the cache."""
        members = {"p1"}
        cache.set("ws1", members)
        members.add("p2")
        assert cache.get("ws1") == {"p1"}

    def test_returned_set_is_immutable(self, cache: ScopedSetCache) -> None:
        """Readers get a frozenset."""
        cache.set("ws1", {"p1"})
        result = cache.get("ws1")
        assert isinstance(result, frozenset)

    def test_expires_after_ttl(self, cache: ScopedSetCache, clock) -> None:
        """Sets expire with their TTL."""
        cache.set("ws1", {"p1"})
        clock.advance(120.0)
        assert cache.get("ws1") is None
