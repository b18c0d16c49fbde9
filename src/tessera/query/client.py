"""Client query cache.

Key-addressed cache of query results used by the rendering layer. Keys are
hierarchical tuples such as ("tasks", workspace_id, {"status": "todo"}).
Entries are fresh for a staleness window; invalidation marks them stale so
the next fetch_query recomputes instead of serving the old result.

Example:
    client = QueryClient()
    tasks = await client.fetch_query(QueryKeys.tasks("ws1"), load_tasks)
    client.invalidate_queries(("tasks", "ws1"))  # every task list in ws1
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import orjson

from tessera.cache.keys import QueryKey, is_prefix
from tessera.cache.store import Clock
from tessera.query.constants import GC_TIME, CacheTimes

logger = logging.getLogger(__name__)

# Invalidations remembered for in-flight fetches
_INVALIDATION_LOG_SIZE = 256


def hash_key(key: QueryKey) -> str:
    """Stable string form of a query key (dict segments are key-sorted)."""
    return orjson.dumps(
        list(key),
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
        default=str,
    ).decode()


def matches(key: QueryKey, prefix: QueryKey, exact: bool = False) -> bool:
    if exact:
        return hash_key(key) == hash_key(prefix)
    return is_prefix(prefix, key)


@dataclass
class QueryState:
    """Cached result of one query."""

    key: QueryKey
    data: Any
    updated_at: float
    last_used: float
    invalidated: bool = False


class QueryClient:
    """In-memory query result cache with prefix invalidation."""

    def __init__(
        self,
        stale_time: float = CacheTimes.MODERATE,
        gc_time: float = GC_TIME,
        clock: Clock = time.monotonic,
    ) -> None:
        self.stale_time = stale_time
        self.gc_time = gc_time
        self._clock = clock
        self._queries: dict[str, QueryState] = {}
        self._epoch = 0
        self._invalidation_log: deque[tuple[int, QueryKey, bool]] = deque(
            maxlen=_INVALIDATION_LOG_SIZE
        )

    def __len__(self) -> int:
        return len(self._queries)

    def get_query_state(self, key: QueryKey) -> QueryState | None:
        return self._queries.get(hash_key(key))

    def get_query_data(self, key: QueryKey) -> Any | None:
        """Return cached data without checking freshness."""
        state = self.get_query_state(key)
        return state.data if state is not None else None

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        now = self._clock()
        self._queries[hash_key(key)] = QueryState(
            key=tuple(key), data=data, updated_at=now, last_used=now
        )

    def is_stale(self, key: QueryKey, stale_time: float | None = None) -> bool:
        """True if the key is missing, invalidated, or older than the stale time."""
        state = self.get_query_state(key)
        if state is None or state.invalidated:
            return True
        window = self.stale_time if stale_time is None else stale_time
        return self._clock() - state.updated_at >= window

    async def fetch_query(
        self,
        key: QueryKey,
        fetch_fn: Callable[[], Awaitable[Any]],
        stale_time: float | None = None,
    ) -> Any:
        """Return fresh cached data, or run fetch_fn and cache its result.

        A result whose fetch overlapped an invalidation of its key is
        returned to this caller but stored as invalidated, so the next read
        fetches again.
        """
        if not self.is_stale(key, stale_time):
            state = self._queries[hash_key(key)]
            state.last_used = self._clock()
            return state.data

        started_epoch = self._epoch
        data = await fetch_fn()
        self.set_query_data(key, data)

        if self._invalidated_since(key, started_epoch):
            self._queries[hash_key(key)].invalidated = True
            logger.debug(f"Query {key!r} was invalidated while fetching")

        return data

    def _invalidated_since(self, key: QueryKey, epoch: int) -> bool:
        if self._epoch == epoch:
            return False
        if not self._invalidation_log or self._invalidation_log[0][0] > epoch + 1:
            # Log no longer covers the fetch window
            return True
        return any(
            entry_epoch > epoch and matches(key, prefix, exact)
            for entry_epoch, prefix, exact in self._invalidation_log
        )

    def find_queries(self, prefix: QueryKey = (), exact: bool = False) -> list[QueryState]:
        return [state for state in self._queries.values() if matches(state.key, prefix, exact)]

    def invalidate_queries(self, prefix: QueryKey = (), exact: bool = False) -> int:
        """Mark matching queries stale.

        Args:
            prefix: Key prefix; the empty prefix matches everything
            exact: Only match a key identical to prefix

        Returns:
            Number of cached queries marked stale
        """
        self._epoch += 1
        self._invalidation_log.append((self._epoch, tuple(prefix), exact))

        count = 0
        for state in self.find_queries(prefix, exact):
            state.invalidated = True
            count += 1

        logger.debug(f"Invalidated {count} queries for {prefix!r} (exact={exact})")
        return count

    def remove_queries(self, prefix: QueryKey = (), exact: bool = False) -> int:
        """Drop matching queries entirely."""
        doomed = [
            hashed
            for hashed, state in self._queries.items()
            if matches(state.key, prefix, exact)
        ]
        for hashed in doomed:
            del self._queries[hashed]
        return len(doomed)

    def gc(self) -> int:
        """Drop queries unused for longer than gc_time."""
        now = self._clock()
        doomed = [
            hashed
            for hashed, state in self._queries.items()
            if now - state.last_used >= self.gc_time
        ]
        for hashed in doomed:
            del self._queries[hashed]
        return len(doomed)

    def evict_expired(self) -> int:
        """Alias of gc() so the expiry sweeper can treat this like a cache."""
        return self.gc()

    def clear(self) -> None:
        self._queries.clear()
