"""User-facing mutation notifications.

The mutation wrapper reports every outcome here. The rendering layer drains
the queue (or subscribes) to show success/failure messages.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Collects notifications and forwards them to listeners."""

    def __init__(self, max_pending: int = 100) -> None:
        self._pending: deque[Notification] = deque(maxlen=max_pending)
        self._listeners: list[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._pending.append(notification)
        logger.debug(f"Notification ({level.value}): {message}")
        for listener in self._listeners:
            listener(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and forget all pending notifications."""
        drained = list(self._pending)
        self._pending.clear()
        return drained
