"""Invalidation rules for the workspace application's mutations.

Server cache names referenced here are the ones registered by
tessera.runtime.build_runtime: "images", "users", "closed_projects".
"""

from __future__ import annotations

from tessera.invalidation.rules import InvalidationRule, KeyPattern, ServerTarget, pattern

CLOSED_PROJECTS = ServerTarget("closed_projects", "workspace_id")
USER = ServerTarget("users", "user_id")
WORKSPACE_IMAGE = ServerTarget("images", "image_id")

FEATURE_ACCESS_KEYS = (
    pattern("has-leads-access"),
    pattern("has-invoices-access"),
    pattern("has-expenses-access"),
    pattern("has-activity-logs-access"),
)


def _workspace_keys(
    analytics: bool = True,
    tasks: bool = True,
    projects: bool = True,
    members: bool = True,
) -> tuple[KeyPattern, ...]:
    keys: list[KeyPattern] = []
    if analytics:
        keys.append(pattern("workspace-analytics", "{workspace_id}", exact=True))
    if tasks:
        keys.append(pattern("tasks", "{workspace_id}"))
    if projects:
        keys.append(pattern("projects", "{workspace_id}", exact=True))
    if members:
        keys.append(pattern("members", "{workspace_id}", exact=True))
    return tuple(keys)


def _project_keys() -> tuple[KeyPattern, ...]:
    return (
        pattern("project-analytics", "{project_id}", exact=True),
        pattern("project", "{project_id}", exact=True),
        *_workspace_keys(members=False),
    )


def _task_keys() -> tuple[KeyPattern, ...]:
    return (
        pattern("task", "{task_id}", exact=True),
        pattern("tasks", "{workspace_id}"),
        pattern("workspace-analytics", "{workspace_id}", exact=True),
        pattern("project-analytics", "{project_id}", exact=True),
    )


def _lead_keys() -> tuple[KeyPattern, ...]:
    return (
        pattern("leads", "{workspace_id}"),
        pattern("lead", "{lead_id}", exact=True),
    )


def _member_keys() -> tuple[KeyPattern, ...]:
    return (
        pattern("member-detail", "{member_id}", exact=True),
        pattern("member", "{member_id}", exact=True),
        pattern("members", "{workspace_id}", exact=True),
        *FEATURE_ACCESS_KEYS,
    )


def default_rules() -> list[InvalidationRule]:
    """The full mutation-kind table."""
    rules: list[InvalidationRule] = [
        # Workspaces
        InvalidationRule(
            kind="workspace.create",
            entity_id="workspace_id",
            patterns=(pattern("workspaces"),),
        ),
        InvalidationRule(
            kind="workspace.update",
            entity_id="workspace_id",
            patterns=(
                pattern("workspaces"),
                pattern("workspace", "{workspace_id}", exact=True),
            ),
            server_targets=(WORKSPACE_IMAGE,),
        ),
        InvalidationRule(
            kind="workspace.delete",
            entity_id="workspace_id",
            patterns=(
                pattern("workspaces"),
                pattern("workspace", "{workspace_id}", exact=True),
                *_workspace_keys(),
            ),
            server_targets=(CLOSED_PROJECTS, WORKSPACE_IMAGE),
        ),
        # Projects
        InvalidationRule(
            kind="project.create",
            entity_id="project_id",
            patterns=_workspace_keys(tasks=False, members=False),
            server_targets=(CLOSED_PROJECTS,),
        ),
        InvalidationRule(
            kind="project.delete",
            entity_id="project_id",
            patterns=_project_keys(),
            server_targets=(CLOSED_PROJECTS,),
        ),
        # Tasks
        InvalidationRule(
            kind="task.bulk_update",
            patterns=(
                pattern("workspace-analytics", "{workspace_id}", exact=True),
                pattern("project-analytics"),
                pattern("tasks", "{workspace_id}"),
            ),
        ),
        # Leads
        InvalidationRule(
            kind="lead.create",
            entity_id="lead_id",
            patterns=(pattern("leads", "{workspace_id}"),),
        ),
        InvalidationRule(
            kind="lead.bulk_create",
            patterns=(pattern("leads", "{workspace_id}"),),
        ),
        InvalidationRule(
            kind="lead.add_comment",
            patterns=(pattern("leads", "{workspace_id}"), pattern("lead", "{lead_id}")),
        ),
        InvalidationRule(
            kind="lead.delete_comment",
            patterns=(pattern("leads", "{workspace_id}"), pattern("lead", "{lead_id}")),
        ),
        # Attendance
        InvalidationRule(
            kind="attendance.check_in",
            patterns=(
                pattern("attendance"),
                pattern("today-attendance"),
                pattern("team-attendance"),
                pattern("attendance-stats"),
            ),
        ),
        InvalidationRule(
            kind="attendance.check_out",
            patterns=(pattern("attendance"), pattern("attendance-stats")),
        ),
        InvalidationRule(
            kind="special_day.manage",
            patterns=(pattern("special-days", "{workspace_id}"), pattern("attendance")),
        ),
        # Expenses
        InvalidationRule(
            kind="expense.create",
            entity_id="expense_id",
            patterns=(pattern("expenses", "{workspace_id}"),),
        ),
        InvalidationRule(
            kind="expense.update",
            entity_id="expense_id",
            patterns=(
                pattern("expenses", "{workspace_id}"),
                pattern("expense", "{expense_id}"),
            ),
        ),
        InvalidationRule(
            # Delete responses carry no workspace id
            kind="expense.delete",
            entity_id="expense_id",
            patterns=(pattern("expenses"), pattern("expense", "{expense_id}")),
        ),
        InvalidationRule(
            kind="invoice.create",
            entity_id="invoice_id",
            patterns=(pattern("invoices", "{workspace_id}"),),
        ),
        # Profile
        InvalidationRule(
            kind="profile.update",
            entity_id="user_id",
            patterns=(pattern("current"),),
            server_targets=(USER,),
        ),
    ]

    # Project updates, including closing/reopening, also clear the project's tasks
    for kind in ("project.update", "project.update_status"):
        rules.append(
            InvalidationRule(
                kind=kind,
                entity_id="project_id",
                patterns=(*_project_keys(), pattern("tasks", "{workspace_id}", "{project_id}")),
                server_targets=(CLOSED_PROJECTS,),
            )
        )

    for kind in ("task.create", "task.update", "task.delete"):
        rules.append(InvalidationRule(kind=kind, entity_id="task_id", patterns=_task_keys()))

    for kind in ("comment.create", "comment.update", "comment.delete"):
        rules.append(
            InvalidationRule(
                kind=kind,
                entity_id="comment_id",
                patterns=(pattern("comments", "{task_id}"),),
            )
        )

    for kind in ("lead.update", "lead.delete"):
        rules.append(InvalidationRule(kind=kind, entity_id="lead_id", patterns=_lead_keys()))

    for kind in ("member.update", "member.update_access"):
        rules.append(
            InvalidationRule(
                kind=kind,
                entity_id="member_id",
                patterns=_member_keys(),
                server_targets=(USER,),
            )
        )

    for kind in ("pdf_template.create", "pdf_template.update", "pdf_template.delete"):
        rules.append(
            InvalidationRule(
                kind=kind,
                entity_id="template_id",
                patterns=(pattern("pdf-templates", "{workspace_id}"),),
            )
        )

    for kind in ("notification.read", "notification.delete", "notification.read_all"):
        rules.append(
            InvalidationRule(
                kind=kind,
                entity_id="notification_id",
                patterns=(pattern("notifications"), pattern("notification-count")),
            )
        )

    return rules
