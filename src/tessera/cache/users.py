"""User cache.

Caches a safe projection of user accounts by user id. Only the fields of
SafeUser are ever stored, whatever the identity service returns, so tokens,
password hashes or preferences never sit in process memory longer than the
fetch itself.

The TTL is short because accounts can change through external
administration without a mutation passing through this process.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tessera.cache.batch import batch_get
from tessera.cache.store import CacheConfig, Clock, TTLStore
from tessera.observability.metrics import record_upstream_failure
from tessera.upstream.base import IdentityService

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = CacheConfig(ttl=3 * 60, max_size=500)


class SafeUser(BaseModel):
    """Non-sensitive user fields."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: str = Field(alias="$id")
    name: str = ""
    email: str = ""

    @classmethod
    def project(cls, record: Mapping[str, Any]) -> "SafeUser":
        """Project a full user record down to the safe subset."""
        return cls.model_validate(
            {
                "$id": record["$id"],
                "name": record.get("name") or "",
                "email": record.get("email") or "",
            }
        )


class UserCache:
    """Identity lookup cache fronting an IdentityService."""

    def __init__(
        self,
        identity: IdentityService,
        config: CacheConfig = DEFAULT_CONFIG,
        max_concurrency: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.identity = identity
        self.max_concurrency = max_concurrency
        self._store: TTLStore[SafeUser] = TTLStore(config, name="users", clock=clock)

    async def _fetch(self, user_id: str) -> SafeUser:
        record = await self.identity.get_user(user_id)
        return SafeUser.project(record)

    async def get(self, user_id: str) -> SafeUser | None:
        """Return the safe user projection, or None if it cannot be fetched."""
        if not user_id:
            return None

        cached = self._store.get(user_id)
        if cached is not None:
            return cached

        try:
            user = await self._fetch(user_id)
        except Exception as e:
            record_upstream_failure(self._store.name)
            logger.error(f"[UserCache] Failed to fetch user {user_id}: {e}")
            return None

        self._store.set(user_id, user)
        return user

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, SafeUser]:
        """Batch fetch users; unknown or failing ids are left out."""
        return await batch_get(
            self._store,
            user_ids,
            self._fetch,
            max_concurrency=self.max_concurrency,
        )

    def invalidate(self, user_id: str) -> None:
        """Drop a cached user. Call this when user data changes."""
        self._store.delete(user_id)

    def clear(self) -> None:
        self._store.clear()

    def evict_expired(self) -> int:
        return self._store.evict_expired()

    def stats(self) -> dict[str, Any]:
        return self._store.stats()
