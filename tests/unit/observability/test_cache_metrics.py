"""Tests for the metrics registry."""

from __future__ import annotations

from tessera.observability.metrics import MetricsRegistry, NoOpMetric


class TestMetricsRegistry:
    """Test metric initialization."""

    def test_disabled_metrics_are_noops(self) -> None:
        """Disabled registries hand out no-op metrics."""
        registry = MetricsRegistry()
        registry.initialize(enabled=False)

        assert isinstance(registry.cache_hits_total, NoOpMetric)
        registry.cache_hits_total.labels(cache="images").inc()
        registry.invalidations_total.labels(tier="query", kind="task.update").inc(3)
        assert registry.generate_latest() == b"# Metrics disabled\n"

    def test_initialize_is_idempotent(self) -> None:
        """A second initialize keeps the first configuration."""
        registry = MetricsRegistry()
        registry.initialize(enabled=False)
        first = registry.mutations_total
        registry.initialize(enabled=False)
        assert registry.mutations_total is first
