"""Query key schema for the client query cache.

Key format: (entity_kind, scope_or_id, *filters)

Where:
- entity_kind: "tasks", "task", "projects", "workspace-analytics", ...
- scope_or_id: workspace id for list keys, entity id for detail keys
- filters: optional trailing segments (project id, filter dicts)

Invalidating a prefix with exact=False clears every key that starts with it,
whatever filters follow.
"""

from __future__ import annotations

from typing import Any

QueryKey = tuple[Any, ...]


class QueryKeys:
    """Query key generator following a consistent naming convention."""

    @staticmethod
    def workspaces() -> QueryKey:
        return ("workspaces",)

    @staticmethod
    def workspace(workspace_id: str) -> QueryKey:
        return ("workspace", workspace_id)

    @staticmethod
    def workspace_analytics(workspace_id: str) -> QueryKey:
        return ("workspace-analytics", workspace_id)

    @staticmethod
    def projects(workspace_id: str) -> QueryKey:
        return ("projects", workspace_id)

    @staticmethod
    def project(project_id: str) -> QueryKey:
        return ("project", project_id)

    @staticmethod
    def project_analytics(project_id: str) -> QueryKey:
        return ("project-analytics", project_id)

    @staticmethod
    def tasks(workspace_id: str, *filters: Any) -> QueryKey:
        """Task list key; filters (project id, status dict) are trailing segments."""
        return ("tasks", workspace_id, *filters)

    @staticmethod
    def task(task_id: str) -> QueryKey:
        return ("task", task_id)

    @staticmethod
    def comments(task_id: str) -> QueryKey:
        return ("comments", task_id)

    @staticmethod
    def members(workspace_id: str) -> QueryKey:
        return ("members", workspace_id)

    @staticmethod
    def member(member_id: str) -> QueryKey:
        return ("member", member_id)

    @staticmethod
    def member_detail(member_id: str) -> QueryKey:
        return ("member-detail", member_id)

    @staticmethod
    def leads(workspace_id: str, *filters: Any) -> QueryKey:
        return ("leads", workspace_id, *filters)

    @staticmethod
    def lead(lead_id: str) -> QueryKey:
        return ("lead", lead_id)

    @staticmethod
    def expenses(workspace_id: str, *filters: Any) -> QueryKey:
        return ("expenses", workspace_id, *filters)

    @staticmethod
    def expense(expense_id: str) -> QueryKey:
        return ("expense", expense_id)

    @staticmethod
    def invoices(workspace_id: str) -> QueryKey:
        return ("invoices", workspace_id)

    @staticmethod
    def attendance(workspace_id: str | None = None) -> QueryKey:
        return ("attendance",) if workspace_id is None else ("attendance", workspace_id)

    @staticmethod
    def notifications() -> QueryKey:
        return ("notifications",)

    @staticmethod
    def current_user() -> QueryKey:
        return ("current",)


def is_prefix(prefix: QueryKey, key: QueryKey) -> bool:
    """True if key starts with every segment of prefix."""
    return len(prefix) <= len(key) and tuple(key[: len(prefix)]) == tuple(prefix)
