"""Invalidation graph.

Maps "a mutation of kind X succeeded" to the client query keys and server
cache entries it makes stale. Every write site goes through this one table
instead of issuing its own invalidation calls, which is what keeps the query
cache and the server-side object caches consistent.

Rules are declarative: key patterns hold named placeholders that are filled
from the mutation result and the caller's variables:

    InvalidationRule(
        kind="task.update",
        entity_id="task_id",
        patterns=(
            pattern("task", "{task_id}", exact=True),
            pattern("tasks", "{workspace_id}"),
        ),
    )

A pattern whose placeholders cannot all be filled is skipped (for example
the project analytics key of a task that has no project).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from tessera.cache.keys import QueryKey
from tessera.errors import InvalidationLookupMiss
from tessera.observability.metrics import record_invalidation
from tessera.query.client import QueryClient

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"^\{([a-z_][a-z0-9_]*)\}$")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Request envelopes whose fields also carry identifiers
_NESTED_SOURCES = ("param", "form", "json", "query")


class Invalidatable(Protocol):
    """A server-side cache that can drop one key."""

    def invalidate(self, key: str) -> None: ...


@dataclass(frozen=True)
class KeyPattern:
    """Query key template with {placeholder} segments."""

    segments: tuple[str, ...]
    exact: bool = False

    @property
    def placeholders(self) -> list[str]:
        names = []
        for segment in self.segments:
            match = _PLACEHOLDER.match(segment)
            if match:
                names.append(match.group(1))
        return names

    def resolve(self, ids: Mapping[str, str]) -> QueryKey | None:
        """Fill placeholders from ids, or None if any is missing."""
        key: list[str] = []
        for segment in self.segments:
            match = _PLACEHOLDER.match(segment)
            if match is None:
                key.append(segment)
                continue
            value = ids.get(match.group(1))
            if not value:
                return None
            key.append(value)
        return tuple(key)


def pattern(*segments: str, exact: bool = False) -> KeyPattern:
    return KeyPattern(segments=segments, exact=exact)


@dataclass(frozen=True)
class ServerTarget:
    """Server cache entry to drop: cache name and the id holding its key."""

    cache: str
    id_name: str


@dataclass(frozen=True)
class InvalidationRule:
    """What one mutation kind invalidates.

    Attributes:
        kind: Mutation kind, e.g. "project.update_status"
        patterns: Client query key patterns to mark stale
        server_targets: Server cache entries to drop immediately
        entity_id: Name under which the result's "$id" is exposed
    """

    kind: str
    patterns: tuple[KeyPattern, ...] = ()
    server_targets: tuple[ServerTarget, ...] = ()
    entity_id: str | None = None


@dataclass
class InvalidationReport:
    """Outcome of applying one rule."""

    kind: str
    matched: bool = True
    ids: dict[str, str] = field(default_factory=dict)
    query_keys: list[tuple[QueryKey, bool]] = field(default_factory=list)
    queries_invalidated: int = 0
    server_entries: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[KeyPattern] = field(default_factory=list)


def _to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    return None


def _collect(source: Any, entity_id: str | None, into: dict[str, str]) -> None:
    mapping = _as_mapping(source)
    if mapping is None:
        return

    # Response envelopes wrap the document as {"data": {...}}
    if "data" in mapping and _as_mapping(mapping["data"]) is not None:
        _collect(mapping["data"], entity_id, into)
        return

    for nested in _NESTED_SOURCES:
        if _as_mapping(mapping.get(nested)) is not None:
            _collect(mapping[nested], entity_id, into)

    for name, value in mapping.items():
        if not isinstance(value, (str, int)) or isinstance(value, bool) or value == "":
            continue
        if name == "$id":
            if entity_id:
                into[entity_id] = str(value)
            continue
        into[_to_snake(name)] = str(value)


def extract_ids(rule: InvalidationRule, result: Any = None, variables: Any = None) -> dict[str, str]:
    """Collect identifiers from the caller's variables and the mutation result.

    Field names are normalized to snake_case (workspaceId -> workspace_id).
    Values from the result win over values from the variables.
    """
    ids: dict[str, str] = {}
    if isinstance(variables, str) and rule.entity_id:
        # Single-id mutations (delete notification "n-1")
        ids[rule.entity_id] = variables
    else:
        _collect(variables, rule.entity_id, ids)
    _collect(result, rule.entity_id, ids)
    return ids


class InvalidationGraph:
    """Registry of invalidation rules bound to the caches they clear."""

    def __init__(
        self,
        query_client: QueryClient,
        server_caches: Mapping[str, Invalidatable] | None = None,
        rules: Iterable[InvalidationRule] = (),
    ) -> None:
        self.query_client = query_client
        self._server_caches: dict[str, Invalidatable] = dict(server_caches or {})
        self._rules: dict[str, InvalidationRule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: InvalidationRule) -> None:
        """Register (or replace) the rule for a mutation kind."""
        if rule.kind in self._rules:
            logger.info(f"Replacing invalidation rule for {rule.kind}")
        self._rules[rule.kind] = rule

    def register_cache(self, name: str, cache: Invalidatable) -> None:
        self._server_caches[name] = cache

    def kinds(self) -> list[str]:
        return sorted(self._rules)

    def rule_for(self, kind: str) -> InvalidationRule | None:
        return self._rules.get(kind)

    def require(self, kind: str) -> InvalidationRule:
        """Return the rule for kind or raise InvalidationLookupMiss."""
        rule = self._rules.get(kind)
        if rule is None:
            raise InvalidationLookupMiss(kind)
        return rule

    def apply(
        self,
        kind: str,
        result: Any = None,
        variables: Any = None,
        ids: Mapping[str, str] | None = None,
    ) -> InvalidationReport:
        """Invalidate everything registered for a successful mutation.

        Args:
            kind: Mutation kind
            result: Value returned by the write
            variables: Arguments the write was called with
            ids: Explicit identifiers, merged over the extracted ones

        Returns:
            InvalidationReport; matched is False if no rule is registered,
            in which case nothing is invalidated.
        """
        rule = self._rules.get(kind)
        if rule is None:
            logger.warning(
                f"No invalidation rule for mutation kind {kind!r}; "
                "cached queries stay until their TTL expires"
            )
            return InvalidationReport(kind=kind, matched=False)

        resolved_ids = extract_ids(rule, result, variables)
        if ids:
            resolved_ids.update(ids)

        report = InvalidationReport(kind=kind, ids=resolved_ids)

        for key_pattern in rule.patterns:
            key = key_pattern.resolve(resolved_ids)
            if key is None:
                report.skipped.append(key_pattern)
                continue
            report.query_keys.append((key, key_pattern.exact))
            report.queries_invalidated += self.query_client.invalidate_queries(
                key, exact=key_pattern.exact
            )

        for target in rule.server_targets:
            cache_key = resolved_ids.get(target.id_name)
            if not cache_key:
                continue
            cache = self._server_caches.get(target.cache)
            if cache is None:
                logger.warning(f"Invalidation rule {kind} targets unknown cache {target.cache}")
                continue
            cache.invalidate(cache_key)
            report.server_entries.append((target.cache, cache_key))

        record_invalidation("query", kind, report.queries_invalidated)
        record_invalidation("server", kind, len(report.server_entries))
        logger.debug(
            f"Applied invalidation for {kind}: {len(report.query_keys)} key prefixes "
            f"({report.queries_invalidated} queries), {len(report.server_entries)} server entries"
        )
        return report
