"""Structured logging for Tessera.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- Request, workspace and user context propagation via context variables
- A human-readable console format for development

Usage:
    from tessera.observability.logging import configure_logging

    # In application startup
    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    with LogContext(workspace_id="ws-1"):
        logger.info("Invalidating workspace queries", extra={"kind": "task.update"})
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

import orjson

# Context variables for request correlation
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
workspace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "workspace_id", default=""
)
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "request_id": request_id_var,
    "workspace_id": workspace_id_var,
    "user_id": user_id_var,
}

# Short labels used by the console format
_CONSOLE_LABELS = {"request_id": "req", "workspace_id": "ws", "user_id": "user"}

# Extra fields the cache layer passes that are worth showing on the console
_CONSOLE_EXTRAS = ("cache", "kind")

# Attributes every LogRecord has; anything else was passed via extra=
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LOGGERS = ("httpx", "httpcore")


def current_context() -> dict[str, str]:
    """Return the non-empty correlation context values."""
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: timestamp, level, logger, message, module, function, line, then the
    correlation context, any extra= fields, and an exception object when the
    record carries exc_info. Values orjson cannot encode are stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **current_context(),
            **_record_extras(record),
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return orjson.dumps(payload, default=str, option=orjson.OPT_NON_STR_KEYS).decode()


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-01-10 12:34:56 | INFO     | tessera.cache.images | Image fetched | cache=images ws=ws-1
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, stream: TextIO | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        stream = stream or sys.stderr
        self.use_colors = use_colors and stream.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{level}{self.RESET}" if color else level

    def _suffix(self, record: logging.LogRecord) -> str:
        parts = [
            f"{name}={getattr(record, name)}"
            for name in _CONSOLE_EXTRAS
            if getattr(record, name, None)
        ]
        for name, value in current_context().items():
            if name == "request_id":
                value = value[:8]
            parts.append(f"{_CONSOLE_LABELS[name]}={value}")
        return f" | {' '.join(parts)}" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self.formatTime(record, self.datefmt)} | {self._level(record)} | "
            f"{record.name} | {record.getMessage()}{self._suffix(record)}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _build_formatter(json_format: bool, use_colors: bool, stream: TextIO) -> logging.Formatter:
    if json_format:
        return JsonFormatter()
    return ConsoleFormatter(use_colors=use_colors, stream=stream)


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Install a single handler on the root logger.

    Args:
        json_format: JSON lines (production) instead of the console format
        level: Root log level name
        use_colors: ANSI level colors in console format, only on a TTY
        stream: Output stream, stderr by default
    """
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(_build_formatter(json_format, use_colors, stream))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Temporarily set correlation context for the current task.

    Usage:
        with LogContext(request_id="abc", workspace_id="ws-1"):
            logger.info("Processing mutation")

    Keys other than request_id, workspace_id and user_id are ignored.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.values = {key: str(value) for key, value in kwargs.items() if key in _CONTEXT_VARS}
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> "LogContext":
        for key, value in self.values.items():
            var = _CONTEXT_VARS[key]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
