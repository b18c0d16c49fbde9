"""Query cache constants.

Single source of truth for staleness windows, retry behavior and query
limits. Times are in seconds.
"""

from __future__ import annotations


class CacheTimes:
    """How long query data is considered fresh."""

    # Very stable data that rarely changes (projects, workspace settings)
    STABLE = 5 * 60
    # Moderately stable data (members, leads)
    MODERATE = 3 * 60
    # Frequently changing data (tasks, comments)
    FREQUENT = 60
    # Time-sensitive data (notifications, pending tasks)
    TIME_SENSITIVE = 30
    # Generated/summarized data that is expensive to compute
    GENERATED = 5 * 60


class RefetchIntervals:
    NOTIFICATIONS = 60
    DASHBOARD = 2 * 60


class RetryConfig:
    DEFAULT = 1
    # Mutations fail fast
    MUTATIONS = 0
    CRITICAL = 3


class QueryLimits:
    DEFAULT = 10
    MEDIUM = 50
    LARGE = 100
    MAX_SAFE = 1000


# How long unused query data stays in memory
GC_TIME = 5 * 60
