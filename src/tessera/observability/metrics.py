"""Prometheus metrics for Tessera.

Provides counters for the in-process cache tiers:
- Cache metrics (hits, misses, evictions, expirations) per cache
- Invalidation metrics (client query keys, server cache entries)
- Upstream fetch failures per cache
- Mutation outcomes per mutation kind

Usage:
    from tessera.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(cache="images").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, generate_latest

from tessera.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_evictions_total: Any = None
    cache_expirations_total: Any = None

    # Invalidation metrics
    invalidations_total: Any = None

    # Upstream metrics
    upstream_failures_total: Any = None

    # Mutation metrics
    mutations_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if enabled is None:
            enabled = settings.enable_metrics

        if not enabled:
            logger.info("Metrics are disabled")
            noop = NoOpMetric()
            self.cache_hits_total = noop
            self.cache_misses_total = noop
            self.cache_evictions_total = noop
            self.cache_expirations_total = noop
            self.invalidations_total = noop
            self.upstream_failures_total = noop
            self.mutations_total = noop
            self._initialized = True
            return

        self._registry = REGISTRY

        self.cache_hits_total = Counter(
            "tessera_cache_hits_total",
            "Cache hits",
            ["cache"],
        )

        self.cache_misses_total = Counter(
            "tessera_cache_misses_total",
            "Cache misses (absent or expired)",
            ["cache"],
        )

        self.cache_evictions_total = Counter(
            "tessera_cache_evictions_total",
            "Entries evicted to respect the size bound",
            ["cache"],
        )

        self.cache_expirations_total = Counter(
            "tessera_cache_expirations_total",
            "Entries removed because their TTL elapsed",
            ["cache"],
        )

        self.invalidations_total = Counter(
            "tessera_invalidations_total",
            "Cache invalidations triggered by mutations",
            ["tier", "kind"],
        )

        self.upstream_failures_total = Counter(
            "tessera_upstream_failures_total",
            "Failed upstream fetches (recovered locally)",
            ["cache"],
        )

        self.mutations_total = Counter(
            "tessera_mutations_total",
            "Mutations by kind and outcome",
            ["kind", "outcome"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(cache: str) -> None:
    """Record cache hit."""
    get_metrics().cache_hits_total.labels(cache=cache).inc()


def record_cache_miss(cache: str) -> None:
    """Record cache miss."""
    get_metrics().cache_misses_total.labels(cache=cache).inc()


def record_cache_eviction(cache: str) -> None:
    """Record a size-bound eviction."""
    get_metrics().cache_evictions_total.labels(cache=cache).inc()


def record_cache_expiration(cache: str, count: int = 1) -> None:
    """Record entries dropped for exceeding their TTL."""
    if count:
        get_metrics().cache_expirations_total.labels(cache=cache).inc(count)


def record_invalidation(tier: str, kind: str, count: int = 1) -> None:
    """Record invalidations.

    Args:
        tier: "query" for client query keys, "server" for object caches
        kind: Mutation kind that triggered the invalidation
        count: Number of entries affected
    """
    if count:
        get_metrics().invalidations_total.labels(tier=tier, kind=kind).inc(count)


def record_upstream_failure(cache: str) -> None:
    """Record an upstream fetch failure."""
    get_metrics().upstream_failures_total.labels(cache=cache).inc()


def record_mutation(kind: str, outcome: str) -> None:
    """Record a mutation outcome (succeeded, failed)."""
    get_metrics().mutations_total.labels(kind=kind, outcome=outcome).inc()
