"""Invalidation layer for Tessera.

Keeps the client query cache and the server-side object caches consistent
after writes:
- InvalidationGraph maps mutation kinds to affected query keys and caches
- Mutation runs a write, applies its rule, then notifies the user
"""

from tessera.invalidation.defaults import default_rules
from tessera.invalidation.mutation import (
    Mutation,
    MutationConfig,
    MutationResult,
    MutationState,
    create_mutation,
)
from tessera.invalidation.notifier import Notification, NotificationLevel, Notifier
from tessera.invalidation.rules import (
    InvalidationGraph,
    InvalidationReport,
    InvalidationRule,
    KeyPattern,
    ServerTarget,
    extract_ids,
    pattern,
)

__all__ = [
    # Graph
    "InvalidationGraph",
    "InvalidationReport",
    "InvalidationRule",
    "KeyPattern",
    "ServerTarget",
    "default_rules",
    "extract_ids",
    "pattern",
    # Mutations
    "Mutation",
    "MutationConfig",
    "MutationResult",
    "MutationState",
    "create_mutation",
    # Notifications
    "Notification",
    "NotificationLevel",
    "Notifier",
]
