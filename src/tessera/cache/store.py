"""Generic in-memory TTL store.

Entries are kept in insertion order. Expiry is detected lazily on read;
size is bounded with oldest-inserted-first (FIFO) eviction, so an entry that
is read often but was inserted first is still the first one evicted.

The store is not synchronized. All callers share one asyncio event loop and
only rely on the atomicity of individual get/set calls.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from tessera.observability.metrics import (
    record_cache_eviction,
    record_cache_expiration,
    record_cache_hit,
    record_cache_miss,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was stored."""

    data: T
    stored_at: float


@dataclass(frozen=True)
class CacheConfig:
    """Freshness/size trade-off for one cache instance.

    Attributes:
        ttl: Maximum entry age in seconds. Zero or negative disables caching.
        max_size: Maximum number of live entries. Zero retains nothing.
    """

    ttl: float
    max_size: int


class TTLStore(Generic[T]):
    """Keyed map of timestamped entries with expiry-on-read."""

    def __init__(self, config: CacheConfig, name: str = "default", clock: Clock = time.monotonic):
        self.config = config
        self.name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.stored_at >= self.config.ttl

    def get(self, key: str) -> T | None:
        """Return the cached value, or None if absent or expired.

        Expired entries are deleted as a side effect.
        """
        if not key:
            return None

        entry = self._entries.get(key)
        if entry is None:
            record_cache_miss(self.name)
            return None

        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            record_cache_expiration(self.name)
            record_cache_miss(self.name)
            return None

        record_cache_hit(self.name)
        return entry.data

    def set(self, key: str, value: T) -> None:
        """Store a value, evicting the oldest entry when full.

        Replacing an existing key never evicts: the entry gets a new storage
        time and moves to the newest insertion position, so it is the last to
        be evicted. Only a new key arriving at max_size evicts, and it evicts
        the oldest-inserted entry regardless of reads.
        """
        if not key or self.config.max_size <= 0:
            return

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.config.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            record_cache_eviction(self.name)
            logger.debug(f"Evicted {oldest!r} from {self.name} cache (max_size reached)")

        self._entries[key] = CacheEntry(data=value, stored_at=self._clock())

    def has(self, key: str) -> bool:
        """Return True if key holds a fresh entry."""
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if one was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def evict_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        record_cache_expiration(self.name, len(expired))
        return len(expired)

    def keys(self) -> list[str]:
        """Keys currently held, oldest first (may include expired entries)."""
        return list(self._entries)

    def stats(self) -> dict[str, Any]:
        """Introspection only."""
        return {
            "name": self.name,
            "size": len(self._entries),
            "max_size": self.config.max_size,
            "ttl": self.config.ttl,
        }
