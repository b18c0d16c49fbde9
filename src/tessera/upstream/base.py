"""Upstream service interfaces.

The caches front a remote document/blob/identity service. These abstract
classes describe the three operations they need, so the HTTP client, the
local filesystem store, and test doubles are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

Document = Mapping[str, Any]


@dataclass
class DocumentList:
    """A page of documents returned by a collection query."""

    documents: list[Document] = field(default_factory=list)
    total: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DocumentList":
        """Build from an upstream JSON payload ({"documents": [...], "total": n})."""
        documents = list(payload.get("documents") or [])
        return cls(documents=documents, total=int(payload.get("total", len(documents))))


class ObjectStore(ABC):
    """Binary object (file) storage."""

    @abstractmethod
    async def get_file_view(self, bucket_id: str, file_id: str) -> bytes:
        """Return the raw bytes of a stored file.

        Raises:
            UpstreamError: If the file cannot be fetched
        """
        ...


class IdentityService(ABC):
    """Principal (user account) lookups."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Mapping[str, Any]:
        """Return the full user record.

        The record may contain sensitive attributes; callers must project it.

        Raises:
            UpstreamError: If the user cannot be fetched
        """
        ...


class DocumentStore(ABC):
    """Document collections."""

    @abstractmethod
    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        queries: Sequence[str] = (),
    ) -> DocumentList:
        """Run a collection query.

        Args:
            database_id: Database identifier
            collection_id: Collection identifier
            queries: Serialized query filters (see tessera.upstream.query)

        Raises:
            UpstreamError: If the query fails
        """
        ...
