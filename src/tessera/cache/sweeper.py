"""Background expiry sweep.

Reads already drop expired entries, so sweeping is not needed for
correctness. It only bounds memory held by entries nobody asks for again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Protocol

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def evict_expired(self) -> int: ...


class ExpirySweeper:
    """Periodically calls evict_expired() on every registered cache."""

    def __init__(self, caches: Mapping[str, Sweepable], interval: float = 60.0):
        self.caches = dict(caches)
        self.interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    def sweep_once(self) -> dict[str, int]:
        """Sweep every cache now. Returns entries removed per cache."""
        removed: dict[str, int] = {}
        for name, cache in self.caches.items():
            try:
                removed[name] = cache.evict_expired()
            except Exception:
                logger.exception(f"Expiry sweep failed for cache {name}")
        total = sum(removed.values())
        if total:
            logger.debug(f"Expiry sweep removed {total} entries: {removed}")
        return removed

    async def start(self) -> None:
        """Start sweeping in the background."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Started cache expiry sweeper (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop sweeping."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped cache expiry sweeper")

    async def _sweep_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                self.sweep_once()
            except asyncio.CancelledError:
                break
