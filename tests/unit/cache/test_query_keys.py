"""Tests for query key generation."""

from tessera.cache.keys import QueryKeys, is_prefix


class TestQueryKeys:
    """Test query key generation."""

    def test_workspace_keys(self) -> None:
        """Workspace keys have correct format."""
        assert QueryKeys.workspaces() == ("workspaces",)
        assert QueryKeys.workspace("ws1") == ("workspace", "ws1")
        assert QueryKeys.workspace_analytics("ws1") == ("workspace-analytics", "ws1")

    def test_tasks_key_with_filters(self) -> None:
        """Filters are trailing segments."""
        key = QueryKeys.tasks("ws1", "p1", {"status": "todo"})
        assert key == ("tasks", "ws1", "p1", {"status": "todo"})

    def test_attendance_key(self) -> None:
        """Attendance key is scoped only when a workspace is given."""
        assert QueryKeys.attendance() == ("attendance",)
        assert QueryKeys.attendance("ws1") == ("attendance", "ws1")

    def test_current_user_key(self) -> None:
        """Current user key is a single segment."""
        assert QueryKeys.current_user() == ("current",)


class TestIsPrefix:
    """Test hierarchical key matching."""

    def test_prefix_matches_longer_key(self) -> None:
        """A prefix matches every key that starts with it."""
        assert is_prefix(("tasks", "ws1"), QueryKeys.tasks("ws1", "p1", {"status": "done"}))

    def test_prefix_does_not_match_other_scope(self) -> None:
        """Different scope segments do not match."""
        assert not is_prefix(("tasks", "ws1"), ("tasks", "ws2"))

    def test_longer_prefix_does_not_match_shorter_key(self) -> None:
        """A prefix longer than the key never matches."""
        assert not is_prefix(("tasks", "ws1", "p1"), ("tasks", "ws1"))

    def test_empty_prefix_matches_everything(self) -> None:
        """The empty prefix matches all keys."""
        assert is_prefix((), ("anything", 1))
