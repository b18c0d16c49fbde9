"""Observability module for Tessera.

Provides metrics and structured logging:
- Prometheus counters for cache hits, misses, evictions and invalidations
- JSON structured logging with request/workspace/user context
"""

from tessera.observability.logging import (
    LogContext,
    configure_logging,
    request_id_var,
    user_id_var,
    workspace_id_var,
)
from tessera.observability.metrics import get_metrics, metrics_registry

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "workspace_id_var",
    "user_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
]
