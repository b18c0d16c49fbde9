"""Batch fetch coordination.

Provides:
- batch_get: serve cached keys locally and fetch only the misses upstream,
  concurrently, merging both into one result
- chunked_query: split an oversized id list into per-query chunks that fit
  the upstream limit, run them concurrently and deduplicate by document id

Example:
    images = await batch_get(store, ["f1", "f2", "f1"], fetch_image)
    # store hits are returned directly, "f2" is fetched once upstream
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import TypeVar

from tessera.cache.store import TTLStore
from tessera.observability.metrics import record_upstream_failure
from tessera.upstream.base import Document, DocumentList, DocumentStore
from tessera.upstream.query import MAX_QUERY_VALUES, Query

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Fetch one key upstream. Returning None means "not found".
Fetcher = Callable[[str], Awaitable[V | None]]

# Run one upstream query for a chunk of ids.
ChunkQuery = Callable[[list[str]], Awaitable[DocumentList]]

DEFAULT_CHUNK_SIZE = 50


def _unique(keys: Iterable[str]) -> list[str]:
    """Drop empty keys and duplicates, preserving first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for key in keys:
        if key and key not in seen:
            seen.add(key)
            result.append(key)
    return result


async def batch_get(
    store: TTLStore[V],
    keys: Iterable[str],
    fetch: Fetcher[V],
    max_concurrency: int | None = None,
) -> dict[str, V]:
    """Fetch many keys through a TTL store.

    Args:
        store: Store holding previously fetched values
        keys: Requested keys; empty keys are ignored, duplicates fetched once
        fetch: Upstream fetch for a single key
        max_concurrency: Optional cap on simultaneous upstream fetches

    Returns:
        Mapping of requested key to value. Keys whose fetch failed or found
        nothing are omitted; one failure never fails the whole batch.
    """
    results: dict[str, V] = {}
    missing: list[str] = []

    for key in _unique(keys):
        cached = store.get(key)
        if cached is not None:
            results[key] = cached
        else:
            missing.append(key)

    if not missing:
        return results

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def fetch_one(key: str) -> tuple[str, V | None]:
        try:
            if semaphore is None:
                value = await fetch(key)
            else:
                async with semaphore:
                    value = await fetch(key)
        except Exception as e:
            record_upstream_failure(store.name)
            logger.error(f"[{store.name}] Failed to fetch {key}: {e}")
            return key, None
        return key, value

    fetched = await asyncio.gather(*(fetch_one(key) for key in missing))

    for key, value in fetched:
        if value is None:
            continue
        store.set(key, value)
        results[key] = value

    logger.debug(
        f"[{store.name}] batch of {len(results)} values "
        f"({len(missing)} fetched upstream)"
    )
    return results


def chunk_ids(ids: list[str], chunk_size: int) -> list[list[str]]:
    """Split ids into contiguous chunks of at most chunk_size."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [ids[i : i + chunk_size] for i in range(0, len(ids), chunk_size)]


def dedupe_documents(documents: Iterable[Document], id_field: str = "$id") -> list[Document]:
    """Deduplicate documents by id, last seen wins, first-seen order kept."""
    unique: dict[Hashable, Document] = {}
    for doc in documents:
        unique[doc.get(id_field)] = doc
    return list(unique.values())


async def chunked_query(
    query: ChunkQuery,
    ids: list[str],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    id_field: str = "$id",
) -> DocumentList:
    """Query documents for an id list of any length.

    Issues ceil(len(ids) / chunk_size) queries, concurrently when there is
    more than one. Upstream query errors propagate to the caller.

    Returns:
        DocumentList with no duplicate ids and total == len(documents)
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    if not ids:
        return DocumentList(documents=[], total=0)

    if len(ids) <= chunk_size:
        pages = [await query(list(ids))]
    else:
        chunks = chunk_ids(ids, chunk_size)
        logger.debug(f"Splitting query for {len(ids)} ids into {len(chunks)} chunks")
        pages = await asyncio.gather(*(query(chunk) for chunk in chunks))

    documents = dedupe_documents(
        (doc for page in pages for doc in page.documents),
        id_field=id_field,
    )
    return DocumentList(documents=documents, total=len(documents))


async def query_documents_by_ids(
    store: DocumentStore,
    database_id: str,
    collection_id: str,
    ids: list[str],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> DocumentList:
    """Fetch documents by id from a collection, chunking around query limits.

    chunk_size is capped at MAX_QUERY_VALUES, the most ids one upstream
    contains() filter accepts.
    """
    if chunk_size > MAX_QUERY_VALUES:
        logger.warning(
            f"chunk_size {chunk_size} exceeds the upstream limit, using {MAX_QUERY_VALUES}"
        )
        chunk_size = MAX_QUERY_VALUES

    async def run(chunk: list[str]) -> DocumentList:
        return await store.list_documents(
            database_id,
            collection_id,
            [Query.contains("$id", chunk), Query.limit(len(chunk))],
        )

    return await chunked_query(run, ids, chunk_size=chunk_size)
