"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from tessera.observability.metrics import metrics_registry


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True, scope="session")
def _disable_metrics() -> None:
    """Keep tests off the global Prometheus registry."""
    metrics_registry.initialize(enabled=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
