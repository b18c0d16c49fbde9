"""Scoped set cache.

Caches one set of identifiers per scope, e.g. the ids of closed projects in
a workspace, so task queries do not recompute them on every read. The cache
never fetches: computing the set needs a query owned by the caller, who
stores the result with set().

Membership changes must be visible immediately, so writers call
invalidate(scope) through the invalidation graph rather than waiting for the
TTL to run out.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import Any

from tessera.cache.store import CacheConfig, Clock, TTLStore

DEFAULT_CONFIG = CacheConfig(ttl=2 * 60, max_size=1000)


class ScopedSetCache:
    """Per-scope identifier sets.

    Members are copied into a frozenset on write, and the same frozenset is
    returned on read, so neither the caller's original collection nor the
    returned value can alias the cached copy.
    """

    def __init__(
        self,
        config: CacheConfig = DEFAULT_CONFIG,
        name: str = "scoped_set",
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self._store: TTLStore[frozenset[str]] = TTLStore(config, name=name, clock=clock)

    def get(self, scope: str) -> frozenset[str] | None:
        return self._store.get(scope)

    def set(self, scope: str, members: Iterable[str]) -> frozenset[str]:
        members = frozenset(members)
        self._store.set(scope, members)
        return members

    def invalidate(self, scope: str) -> None:
        self._store.delete(scope)

    def clear(self) -> None:
        self._store.clear()

    def evict_expired(self) -> int:
        return self._store.evict_expired()

    def stats(self) -> dict[str, Any]:
        return self._store.stats()
