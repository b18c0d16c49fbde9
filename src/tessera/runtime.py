"""Runtime wiring for Tessera.

Builds every cache instance once at process start and hands them out by
reference. There is no module-level cache state: tests and workers can
build as many isolated runtimes as they need.

Example:
    runtime = build_runtime()
    await runtime.start()
    images = await runtime.images.get_many(image_ids)
    ...
    await runtime.stop()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from tessera.cache.batch import query_documents_by_ids
from tessera.cache.images import ImageCache
from tessera.cache.scoped import ScopedSetCache
from tessera.cache.store import CacheConfig, Clock
from tessera.cache.sweeper import ExpirySweeper
from tessera.cache.users import UserCache
from tessera.config import Settings, settings
from tessera.invalidation.defaults import default_rules
from tessera.invalidation.mutation import Mutation, MutationConfig
from tessera.invalidation.notifier import Notifier
from tessera.invalidation.rules import InvalidationGraph
from tessera.observability.logging import configure_logging
from tessera.observability.metrics import metrics_registry
from tessera.query.client import QueryClient
from tessera.upstream.base import DocumentList, DocumentStore, IdentityService, ObjectStore
from tessera.upstream.http import UpstreamClient
from tessera.upstream.local import LocalObjectStore

logger = logging.getLogger(__name__)


def setup_observability(cfg: Settings = settings) -> None:
    """Configure logging and metrics once at process start."""
    configure_logging(json_format=cfg.log_json, level=cfg.log_level)
    metrics_registry.initialize(enabled=cfg.enable_metrics)


def create_upstream_client(cfg: Settings) -> UpstreamClient:
    """Create the HTTP upstream client from settings."""
    return UpstreamClient(
        endpoint=cfg.upstream_endpoint,
        project_id=cfg.upstream_project_id,
        api_key=cfg.upstream_api_key,
        timeout=cfg.upstream_timeout,
    )


def create_object_store(cfg: Settings, client: UpstreamClient | None) -> ObjectStore:
    """Return the object store selected by settings."""
    store_type = cfg.object_store_type.lower()
    if store_type == "local":
        return LocalObjectStore(base_path=cfg.object_store_path)
    if store_type == "http":
        if client is None:
            raise ValueError("object_store_type='http' requires an upstream client")
        return client
    raise ValueError("Unsupported object_store_type. Supported values: http, local.")


@dataclass
class CacheRuntime:
    """Every cache instance of one process, wired together."""

    images: ImageCache
    users: UserCache
    closed_projects: ScopedSetCache
    query_client: QueryClient
    graph: InvalidationGraph
    notifier: Notifier
    sweeper: ExpirySweeper
    documents: DocumentStore | None = None
    database_id: str = "main"
    chunk_size: int = 50
    _owned_client: UpstreamClient | None = field(default=None, repr=False)

    async def start(self) -> None:
        await self.sweeper.start()
        logger.info("Cache runtime started")

    async def stop(self) -> None:
        await self.sweeper.stop()
        if self._owned_client is not None:
            await self._owned_client.close()
        logger.info("Cache runtime stopped")

    def mutation(self, config: MutationConfig[Any, Any]) -> Mutation[Any, Any]:
        """Bind a mutation config to this runtime's graph and notifier."""
        return Mutation(config, self.graph, self.notifier)

    async def query_documents(self, collection_id: str, ids: list[str]) -> DocumentList:
        """Fetch documents by id, chunked to the upstream per-query limit."""
        if self.documents is None:
            raise ValueError("No document store configured")
        return await query_documents_by_ids(
            self.documents,
            self.database_id,
            collection_id,
            ids,
            chunk_size=self.chunk_size,
        )

    def stats(self) -> dict[str, Any]:
        return {
            "images": self.images.stats(),
            "users": self.users.stats(),
            "closed_projects": self.closed_projects.stats(),
            "queries": len(self.query_client),
        }


def build_runtime(
    cfg: Settings = settings,
    object_store: ObjectStore | None = None,
    identity: IdentityService | None = None,
    documents: DocumentStore | None = None,
    clock: Clock = time.monotonic,
) -> CacheRuntime:
    """Construct all caches and the invalidation graph.

    Services not passed explicitly are served by an UpstreamClient built
    from settings, which the runtime closes on stop().
    """
    client: UpstreamClient | None = None
    if identity is None or documents is None or (
        object_store is None and cfg.object_store_type.lower() == "http"
    ):
        client = create_upstream_client(cfg)

    if object_store is None:
        object_store = create_object_store(cfg, client)
    identity = identity or client
    documents = documents or client
    if identity is None:
        raise ValueError("No identity service configured")

    images = ImageCache(
        object_store,
        bucket_id=cfg.images_bucket_id,
        config=CacheConfig(ttl=cfg.image_cache_ttl, max_size=cfg.image_cache_max_size),
        mime_type=cfg.image_mime_type,
        max_concurrency=cfg.batch_max_concurrency,
        clock=clock,
    )
    users = UserCache(
        identity,
        config=CacheConfig(ttl=cfg.user_cache_ttl, max_size=cfg.user_cache_max_size),
        max_concurrency=cfg.batch_max_concurrency,
        clock=clock,
    )
    closed_projects = ScopedSetCache(
        config=CacheConfig(
            ttl=cfg.closed_projects_cache_ttl, max_size=cfg.closed_projects_cache_max_size
        ),
        name="closed_projects",
        clock=clock,
    )
    query_client = QueryClient(
        stale_time=cfg.query_stale_time,
        gc_time=cfg.query_gc_time,
        clock=clock,
    )
    graph = InvalidationGraph(
        query_client,
        server_caches={
            "images": images,
            "users": users,
            "closed_projects": closed_projects,
        },
        rules=default_rules(),
    )
    sweeper = ExpirySweeper(
        {
            "images": images,
            "users": users,
            "closed_projects": closed_projects,
            "queries": query_client,
        },
        interval=cfg.sweep_interval,
    )

    return CacheRuntime(
        images=images,
        users=users,
        closed_projects=closed_projects,
        query_client=query_client,
        graph=graph,
        notifier=Notifier(),
        sweeper=sweeper,
        documents=documents,
        database_id=cfg.upstream_database_id,
        chunk_size=cfg.query_chunk_size,
        _owned_client=client,
    )
