"""Image cache.

Caches base64-encoded file contents by file id so repeated page renders do
not hit the object store for the same workspace images. Values can be
returned as plain base64 or as ``data:`` URLs ready to embed.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Iterable
from typing import Any

from tessera.cache.batch import batch_get
from tessera.cache.store import CacheConfig, Clock, TTLStore
from tessera.observability.metrics import record_upstream_failure
from tessera.upstream.base import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = CacheConfig(ttl=5 * 60, max_size=1000)
DEFAULT_MIME_TYPE = "image/png"


def to_data_url(encoded: str, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    """Wrap base64 text as an embeddable data URL."""
    return f"data:{mime_type};base64,{encoded}"


class ImageCache:
    """Binary object cache fronting an ObjectStore bucket."""

    def __init__(
        self,
        storage: ObjectStore,
        bucket_id: str,
        config: CacheConfig = DEFAULT_CONFIG,
        mime_type: str = DEFAULT_MIME_TYPE,
        max_concurrency: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.storage = storage
        self.bucket_id = bucket_id
        self.mime_type = mime_type
        self.max_concurrency = max_concurrency
        self._store: TTLStore[str] = TTLStore(config, name="images", clock=clock)

    async def _fetch(self, file_id: str) -> str:
        content = await self.storage.get_file_view(self.bucket_id, file_id)
        return base64.b64encode(content).decode("ascii")

    async def get(self, file_id: str) -> str | None:
        """Return the base64-encoded file, or None if it cannot be fetched."""
        if not file_id:
            return None

        cached = self._store.get(file_id)
        if cached is not None:
            return cached

        try:
            encoded = await self._fetch(file_id)
        except Exception as e:
            record_upstream_failure(self._store.name)
            logger.error(f"[ImageCache] Failed to fetch image {file_id}: {e}")
            return None

        self._store.set(file_id, encoded)
        return encoded

    async def get_data_url(self, file_id: str, mime_type: str | None = None) -> str | None:
        """Return the file as a data URL, or None if it cannot be fetched."""
        encoded = await self.get(file_id)
        if not encoded:
            return None
        return to_data_url(encoded, mime_type or self.mime_type)

    async def get_many(
        self, file_ids: Iterable[str], mime_type: str | None = None
    ) -> dict[str, str]:
        """Batch fetch images as data URLs.

        Cached images are served locally; the rest are fetched in parallel.
        Images that fail to load are left out of the result.
        """
        encoded = await batch_get(
            self._store,
            file_ids,
            self._fetch,
            max_concurrency=self.max_concurrency,
        )
        mime = mime_type or self.mime_type
        return {file_id: to_data_url(value, mime) for file_id, value in encoded.items()}

    def invalidate(self, file_id: str) -> None:
        """Drop a cached image (e.g. after the file was replaced)."""
        self._store.delete(file_id)

    def clear(self) -> None:
        self._store.clear()

    def evict_expired(self) -> int:
        return self._store.evict_expired()

    def stats(self) -> dict[str, Any]:
        return self._store.stats()
