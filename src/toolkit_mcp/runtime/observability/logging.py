"""Logging setup for the server process.

All records go to stderr: stdout carries the MCP stream. Two formats:
"text" for humans and "json" (one orjson object per line) for aggregation.

Quick Start:
    >>> from toolkit_mcp.runtime.observability import configure_logging
    >>> configure_logging(level="DEBUG", format="json")
    >>> logging.getLogger("toolkit_mcp.dispatch").info("ready")
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

import orjson

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "toolkit_mcp"

# Attributes every LogRecord carries; anything else came in via `extra=`
_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """JSON Lines output: timestamp, level, logger, event plus any extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update({k: v for k, v in record.__dict__.items() if k not in _RESERVED})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str, option=orjson.OPT_NON_STR_KEYS).decode()


def configure_logging(
    level: str = "INFO",
    format: str = "text",  # noqa: A002 - matches LoggingSettings.format
    *,
    output: TextIO | None = None,
) -> logging.Logger:
    """Install a single handler on the package logger. Safe to call repeatedly."""
    match format:
        case "text": formatter: logging.Formatter = logging.Formatter(TEXT_FORMAT)
        case "json": formatter = JsonFormatter()
        case _: raise ValueError(f"Unknown format: {format}. Use 'text' or 'json'")

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    return root
