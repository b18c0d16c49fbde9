"""Local filesystem object store.

Stores files in a local directory structure:
    {base_path}/{bucket_id}/{file_id}

This provides:
- Simple development setups (no upstream service)
- Easy inspection of cached source objects
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]

from tessera.errors import UpstreamError
from tessera.upstream.base import ObjectStore

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Local filesystem object store backend."""

    def __init__(self, base_path: str | Path = "/var/lib/tessera/objects"):
        """Initialize local object store.

        Args:
            base_path: Base directory for stored objects
        """
        self.base_path = Path(base_path)

    def _get_path(self, bucket_id: str, file_id: str) -> Path:
        """Get the full path for a file, refusing path traversal."""
        if not bucket_id or not file_id or "/" in file_id or file_id in (".", ".."):
            raise UpstreamError(f"Invalid object id: {bucket_id}/{file_id}", status_code=400)
        return self.base_path / bucket_id / file_id

    async def put(self, bucket_id: str, file_id: str, content: bytes) -> Path:
        """Write a file (used to seed development data)."""
        path = self._get_path(bucket_id, file_id)
        if not await aiofiles.os.path.exists(path.parent):
            await aiofiles.os.makedirs(path.parent, exist_ok=True)

        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

        logger.debug(f"Stored object {bucket_id}/{file_id} at {path} ({len(content)} bytes)")
        return path

    async def get_file_view(self, bucket_id: str, file_id: str) -> bytes:
        """Read file bytes from the local filesystem."""
        path = self._get_path(bucket_id, file_id)

        if not await aiofiles.os.path.exists(path):
            raise UpstreamError(f"Object not found: {bucket_id}/{file_id}", status_code=404)

        async with aiofiles.open(path, "rb") as f:
            content = await f.read()

        return cast(bytes, content)

    async def delete(self, bucket_id: str, file_id: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        path = self._get_path(bucket_id, file_id)

        if not await aiofiles.os.path.exists(path):
            return False

        await aiofiles.os.remove(path)
        logger.debug(f"Deleted object at {path}")
        return True
