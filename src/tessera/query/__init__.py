"""Client query cache for Tessera."""

from tessera.query.client import QueryClient, QueryState, hash_key
from tessera.query.constants import CacheTimes, QueryLimits, RefetchIntervals, RetryConfig

__all__ = [
    "QueryClient",
    "QueryState",
    "hash_key",
    "CacheTimes",
    "QueryLimits",
    "RefetchIntervals",
    "RetryConfig",
]
