"""Tests for upstream query builders."""

import pytest

from tessera.upstream.base import DocumentList
from tessera.upstream.query import MAX_QUERY_VALUES, Query


class TestQuery:
    """Test query string construction."""

    def test_contains(self) -> None:
        """contains serializes method, attribute and values."""
        assert Query.parse(Query.contains("$id", ["a", "b"])) == {
            "method": "contains",
            "attribute": "$id",
            "values": ["a", "b"],
        }

    def test_contains_rejects_too_many_values(self) -> None:
        """Upstream limits the number of values per query."""
        with pytest.raises(ValueError):
            Query.contains("$id", [str(i) for i in range(MAX_QUERY_VALUES + 1)])

    def test_equal_wraps_scalar(self) -> None:
        """Scalar values are sent as a one-element list."""
        assert Query.parse(Query.equal("status", "closed"))["values"] == ["closed"]

    def test_limit(self) -> None:
        """limit has no attribute."""
        assert Query.parse(Query.limit(25)) == {"method": "limit", "values": [25]}


class TestDocumentList:
    """Test document list payload parsing."""

    def test_from_payload(self) -> None:
        """Documents and total are read from the payload."""
        result = DocumentList.from_payload({"documents": [{"$id": "1"}], "total": 7})
        assert result.total == 7
        assert len(result.documents) == 1

    def test_total_defaults_to_document_count(self) -> None:
        """A payload without total counts its documents."""
        result = DocumentList.from_payload({"documents": [{"$id": "1"}, {"$id": "2"}]})
        assert result.total == 2
