"""Upstream service clients for Tessera.

Provides the backing stores the caches front:
- UpstreamClient: HTTP client for the document/blob/identity service
- LocalObjectStore: filesystem object store for development
- Query: query filter builders
"""

from tessera.upstream.base import (
    Document,
    DocumentList,
    DocumentStore,
    IdentityService,
    ObjectStore,
)
from tessera.upstream.http import UpstreamClient
from tessera.upstream.local import LocalObjectStore
from tessera.upstream.query import Query

__all__ = [
    "Document",
    "DocumentList",
    "DocumentStore",
    "IdentityService",
    "ObjectStore",
    "UpstreamClient",
    "LocalObjectStore",
    "Query",
]
