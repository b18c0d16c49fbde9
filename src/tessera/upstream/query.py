"""Query filter builders for the upstream document service.

Queries are sent as JSON strings of the form
``{"method": "contains", "attribute": "$id", "values": [...]}``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import orjson

# Upstream rejects queries with more values than this
MAX_QUERY_VALUES = 100


def _serialize(method: str, attribute: str | None = None, values: list[Any] | None = None) -> str:
    payload: dict[str, Any] = {"method": method}
    if attribute is not None:
        payload["attribute"] = attribute
    if values is not None:
        payload["values"] = values
    return orjson.dumps(payload).decode()


class Query:
    """Builders for upstream query strings."""

    @staticmethod
    def contains(attribute: str, values: Iterable[Any]) -> str:
        values = list(values)
        if len(values) > MAX_QUERY_VALUES:
            raise ValueError(
                f"Query.contains accepts at most {MAX_QUERY_VALUES} values, got {len(values)}"
            )
        return _serialize("contains", attribute, values)

    @staticmethod
    def equal(attribute: str, value: Any) -> str:
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        return _serialize("equal", attribute, values)

    @staticmethod
    def limit(count: int) -> str:
        return _serialize("limit", values=[count])

    @staticmethod
    def parse(query: str) -> dict[str, Any]:
        """Decode a query string (used by in-process stores and tests)."""
        return orjson.loads(query)
