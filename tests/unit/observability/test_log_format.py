"""Tests for structured logging."""

from __future__ import annotations

import io
import json
import logging
import sys

from tessera.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    current_context,
    workspace_id_var,
)


def make_record(message: str = "Invalidated 3 queries", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tessera.invalidation.rules",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Test JSON log output."""

    def test_basic_fields(self) -> None:
        """Records are rendered as JSON with standard fields."""
        data = json.loads(JsonFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "tessera.invalidation.rules"
        assert data["message"] == "Invalidated 3 queries"

    def test_includes_context(self) -> None:
        """Context variables are attached to every record."""
        with LogContext(workspace_id="ws1", request_id="req-1"):
            data = json.loads(JsonFormatter().format(make_record()))
        assert data["workspace_id"] == "ws1"
        assert data["request_id"] == "req-1"

    def test_includes_extra_fields(self) -> None:
        """extra= fields are copied into the output."""
        data = json.loads(JsonFormatter().format(make_record(kind="task.update")))
        assert data["kind"] == "task.update"

    def test_unencodable_extra_is_stringified(self) -> None:
        """Extra values JSON cannot encode are rendered with str()."""
        data = json.loads(JsonFormatter().format(make_record(keys=frozenset({"tasks"}))))
        assert data["keys"] == "frozenset({'tasks'})"

    def test_exception_info(self) -> None:
        """Exceptions are serialized with type and message."""
        try:
            raise ValueError("bad key")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad key"


class TestConsoleFormatter:
    """Test human-readable output."""

    def test_format(self) -> None:
        """Console lines show level, logger, message and workspace."""
        with LogContext(workspace_id="ws1"):
            line = ConsoleFormatter(use_colors=False).format(make_record())
        assert "INFO" in line
        assert "tessera.invalidation.rules" in line
        assert "Invalidated 3 queries" in line
        assert line.endswith("ws=ws1")

    def test_cache_fields_precede_context(self) -> None:
        """cache and kind extras are shown before the correlation context."""
        record = make_record(cache="images", kind="task.update")
        with LogContext(workspace_id="ws1"):
            line = ConsoleFormatter(use_colors=False).format(record)
        assert line.endswith("| cache=images kind=task.update ws=ws1")


class TestLogContext:
    """Test context propagation."""

    def test_context_is_reset_on_exit(self) -> None:
        """Values are restored after the block."""
        with LogContext(workspace_id="ws1"):
            assert workspace_id_var.get() == "ws1"
        assert workspace_id_var.get() == ""
        assert current_context() == {}

    def test_unknown_keys_are_ignored(self) -> None:
        """Only known context variables are set."""
        with LogContext(tenant="t1"):
            assert "tenant" not in current_context()


class TestConfigureLogging:
    """Test root logger setup."""

    def test_configure_json(self) -> None:
        """JSON mode installs a JsonFormatter on the root logger."""
        root = logging.getLogger()
        previous_handlers = root.handlers[:]
        previous_level = root.level
        try:
            configure_logging(json_format=True, level="DEBUG")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, JsonFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)

    def test_writes_to_given_stream(self) -> None:
        """Records go to the stream passed in, one JSON object per line."""
        root = logging.getLogger()
        previous_handlers = root.handlers[:]
        previous_level = root.level
        stream = io.StringIO()
        try:
            configure_logging(json_format=True, level="INFO", stream=stream)
            logging.getLogger("tessera.cache.users").info("User fetched", extra={"cache": "users"})
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)
        data = json.loads(stream.getvalue().splitlines()[-1])
        assert data["message"] == "User fetched"
        assert data["cache"] == "users"
