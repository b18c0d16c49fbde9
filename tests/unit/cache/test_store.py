"""Tests for the in-memory TTL store."""

from __future__ import annotations

import pytest

from tessera.cache.store import CacheConfig, TTLStore


class TestTTLStore:
    """Test expiry-on-read, size bound and FIFO eviction."""

    @pytest.fixture
    def store(self, clock) -> TTLStore[str]:
        return TTLStore(CacheConfig(ttl=10.0, max_size=3), name="test", clock=clock)

    def test_set_then_get(self, store: TTLStore[str]) -> None:
        """A stored value is returned while fresh."""
        store.set("a", "alpha")
        assert store.get("a") == "alpha"

    def test_get_absent_returns_none(self, store: TTLStore[str]) -> None:
        """Absent keys return None."""
        assert store.get("missing") is None

    def test_empty_key_is_ignored(self, store: TTLStore[str]) -> None:
        """Empty keys are never stored or looked up."""
        store.set("", "nothing")
        assert len(store) == 0
        assert store.get("") is None

    def test_expired_entry_is_absent_and_deleted(self, store: TTLStore[str], clock) -> None:
        """An entry at or past its TTL reads as absent and is removed."""
        store.set("a", "alpha")
        store.set("b", "beta")
        clock.advance(10.0)
        assert len(store) == 2
        assert store.get("a") is None
        assert len(store) == 1
        assert "a" not in store.keys()

    def test_entry_fresh_just_before_ttl(self, store: TTLStore[str], clock) -> None:
        """An entry younger than its TTL is still served."""
        store.set("a", "alpha")
        clock.advance(9.99)
        assert store.get("a") == "alpha"

    def test_size_never_exceeds_max(self, store: TTLStore[str]) -> None:
        """The store holds at most max_size entries."""
        for i in range(10):
            store.set(f"k{i}", str(i))
            assert len(store) <= 3
        assert store.keys() == ["k7", "k8", "k9"]

    def test_eviction_is_fifo_not_lru(self, store: TTLStore[str]) -> None:
        """Reading an entry does not protect it from eviction."""
        store.set("a", "1")
        store.set("b", "2")
        store.set("c", "3")
        assert store.get("a") == "1"
        store.set("d", "4")
        assert store.get("a") is None
        assert store.keys() == ["b", "c", "d"]

    def test_replacing_key_does_not_evict(self, store: TTLStore[str]) -> None:
        """Setting an existing key replaces it and moves it to the newest slot."""
        store.set("a", "1")
        store.set("b", "2")
        store.set("c", "3")
        store.set("a", "1b")
        assert len(store) == 3
        assert store.get("a") == "1b"
        assert store.keys() == ["b", "c", "a"]

    def test_replacement_refreshes_timestamp(self, store: TTLStore[str], clock) -> None:
        """A replaced entry gets a new storage time."""
        store.set("a", "1")
        clock.advance(8.0)
        store.set("a", "2")
        clock.advance(8.0)
        assert store.get("a") == "2"

    def test_zero_max_size_retains_nothing(self, clock) -> None:
        """max_size of zero disables storage."""
        store: TTLStore[str] = TTLStore(CacheConfig(ttl=10.0, max_size=0), clock=clock)
        store.set("a", "1")
        assert len(store) == 0
        assert store.get("a") is None

    def test_zero_ttl_is_always_stale(self, clock) -> None:
        """ttl of zero means every entry is already expired."""
        store: TTLStore[str] = TTLStore(CacheConfig(ttl=0.0, max_size=10), clock=clock)
        store.set("a", "1")
        assert store.get("a") is None

    def test_delete(self, store: TTLStore[str]) -> None:
        """delete removes an entry and reports whether it existed."""
        store.set("a", "1")
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_delete_then_get_is_absent_even_within_ttl(self, store: TTLStore[str]) -> None:
        """An invalidated key is absent right away."""
        store.set("a", "1")
        store.delete("a")
        assert store.has("a") is False

    def test_clear(self, store: TTLStore[str]) -> None:
        """clear removes everything."""
        store.set("a", "1")
        store.set("b", "2")
        store.clear()
        assert len(store) == 0

    def test_evict_expired(self, store: TTLStore[str], clock) -> None:
        """evict_expired drops only expired entries."""
        store.set("old", "1")
        clock.advance(6.0)
        store.set("new", "2")
        clock.advance(5.0)
        assert store.evict_expired() == 1
        assert store.keys() == ["new"]

    def test_stats(self, store: TTLStore[str]) -> None:
        """stats reports size and configuration."""
        store.set("a", "1")
        assert store.stats() == {"name": "test", "size": 1, "max_size": 3, "ttl": 10.0}

    def test_short_ttl_scenario(self, clock) -> None:
        """Oldest entry is evicted, then the survivors expire."""
        store: TTLStore[str] = TTLStore(CacheConfig(ttl=0.1, max_size=2), clock=clock)
        store.set("a", "1")
        store.set("b", "2")
        store.set("c", "3")
        assert store.get("a") is None
        assert store.get("b") == "2"
        assert store.get("c") == "3"

        clock.advance(0.15)
        assert store.get("b") is None
        assert store.get("c") is None
        assert len(store) == 0
