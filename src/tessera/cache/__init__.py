"""Cache layer for Tessera.

Provides in-process caches in front of the upstream service:
- TTLStore: expiry-on-read, bounded size, FIFO eviction
- ImageCache: base64-encoded files by file id
- UserCache: safe user projections by user id
- ScopedSetCache: identifier sets per scope (closed projects per workspace)
- batch_get / chunked_query: batched upstream access
"""

from tessera.cache.batch import batch_get, chunk_ids, chunked_query, query_documents_by_ids
from tessera.cache.images import ImageCache, to_data_url
from tessera.cache.keys import QueryKey, QueryKeys
from tessera.cache.scoped import ScopedSetCache
from tessera.cache.store import CacheConfig, CacheEntry, TTLStore
from tessera.cache.sweeper import ExpirySweeper
from tessera.cache.users import SafeUser, UserCache

__all__ = [
    # Core store
    "CacheConfig",
    "CacheEntry",
    "TTLStore",
    "ExpirySweeper",
    # Object caches
    "ImageCache",
    "UserCache",
    "SafeUser",
    "ScopedSetCache",
    "to_data_url",
    # Batching
    "batch_get",
    "chunk_ids",
    "chunked_query",
    "query_documents_by_ids",
    # Keys
    "QueryKey",
    "QueryKeys",
]
