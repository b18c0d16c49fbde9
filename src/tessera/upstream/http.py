"""HTTP client for the upstream document/blob/identity service.

Speaks the Appwrite-style REST API:
    GET {endpoint}/storage/buckets/{bucket_id}/files/{file_id}/view
    GET {endpoint}/users/{user_id}
    GET {endpoint}/databases/{database_id}/collections/{collection_id}/documents

Authentication uses the X-Appwrite-Project and X-Appwrite-Key headers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx
import orjson

from tessera.errors import UpstreamError
from tessera.upstream.base import DocumentList, DocumentStore, IdentityService, ObjectStore

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class UpstreamClient(ObjectStore, IdentityService, DocumentStore):
    """Async client implementing every upstream interface over HTTP."""

    def __init__(
        self,
        endpoint: str,
        project_id: str | None = None,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Base URL including the API version (e.g. https://host/v1)
            project_id: Project identifier sent with every request
            api_key: Server API key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.project_id:
            headers["X-Appwrite-Project"] = self.project_id
        if self.api_key:
            headers["X-Appwrite-Key"] = self.api_key
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "UpstreamClient":
        await self._get_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _get(
        self, path: str, params: Sequence[tuple[str, str]] | None = None
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"GET {path} failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamError(self._error_message(response), status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            return f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return f"HTTP {response.status_code}"

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise UpstreamError(f"Invalid JSON from upstream: {e}") from e

    async def get_file_view(self, bucket_id: str, file_id: str) -> bytes:
        """Fetch raw file bytes."""
        response = await self._get(
            f"/storage/buckets/{_segment(bucket_id)}/files/{_segment(file_id)}/view"
        )
        return response.content

    async def get_user(self, user_id: str) -> Mapping[str, Any]:
        """Fetch the full user record."""
        response = await self._get(f"/users/{_segment(user_id)}")
        payload = self._decode(response)
        if not isinstance(payload, dict):
            raise UpstreamError(f"Unexpected user payload for {user_id}")
        return payload

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        queries: Sequence[str] = (),
    ) -> DocumentList:
        """Run a collection query."""
        path = (
            f"/databases/{_segment(database_id)}/collections/{_segment(collection_id)}/documents"
        )
        response = await self._get(path, params=[("queries[]", q) for q in queries])
        payload = self._decode(response)
        if not isinstance(payload, dict):
            raise UpstreamError(f"Unexpected document list payload for {collection_id}")
        return DocumentList.from_payload(payload)
