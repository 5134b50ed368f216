"""Standardized error handling for the invocation pipeline.

Every failure that reaches a caller is a ToolError: a frozen record with a
machine-readable code, rendered as a single line for the response envelope.
"""

from __future__ import annotations

import math
from enum import StrEnum
from functools import lru_cache
from typing import Self

import orjson
from pydantic import BaseModel, ConfigDict


class ErrorCode(StrEnum):
    """Standard error codes for pipeline and tool failures."""
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_PARAMS = "INVALID_PARAMS"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Checked in order against the lowercased exception type name, then its message
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "timed out": ErrorCode.TIMEOUT,
    "connect": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "transporterror": ErrorCode.NETWORK_ERROR,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "httpstatuserror": ErrorCode.EXTERNAL_SERVICE_ERROR,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.EXECUTION_ERROR


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map an arbitrary handler exception to an error code."""
    if isinstance(exc, TimeoutError):
        return ErrorCode.TIMEOUT
    if isinstance(exc, ConnectionError):
        return ErrorCode.NETWORK_ERROR
    code = _classify_cached(type(exc).__name__)
    return code if code is not ErrorCode.EXECUTION_ERROR else _classify_cached(str(exc))


def _one_line(text: str) -> str:
    return " ".join(text.split())


class ToolError(BaseModel):
    """Structured error for a single failed invocation."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    message: str
    code: ErrorCode = ErrorCode.EXECUTION_ERROR
    details: dict[str, object] | None = None

    @classmethod
    def create(
        cls,
        tool_name: str,
        message: str,
        code: ErrorCode = ErrorCode.EXECUTION_ERROR,
        *,
        details: dict[str, object] | None = None,
    ) -> Self:
        return cls(tool_name=tool_name, message=message, code=code, details=details)

    @classmethod
    def not_found(cls, tool_name: str) -> Self:
        return cls(tool_name=tool_name, message=f"Tool not found: {tool_name}", code=ErrorCode.NOT_FOUND)

    @classmethod
    def rate_limited(cls, tool_name: str, message: str, reset_in_seconds: int) -> Self:
        return cls(
            tool_name=tool_name,
            message=message,
            code=ErrorCode.RATE_LIMITED,
            details={"resetInSeconds": reset_in_seconds},
        )

    @classmethod
    def from_exception(cls, tool_name: str, exc: BaseException, context: str = "") -> Self:
        """Create from exception with auto-classification."""
        text = str(exc) or type(exc).__name__
        return cls(
            tool_name=tool_name,
            message=f"{context}: {text}" if context else text,
            code=classify_exception(exc),
        )

    def with_tool(self, tool_name: str) -> Self:
        return self.model_copy(update={"tool_name": tool_name})

    @property
    def reset_in_seconds(self) -> int | None:
        """Retry-after hint carried by RATE_LIMITED errors."""
        if self.details and "resetInSeconds" in self.details:
            return int(math.ceil(float(self.details["resetInSeconds"])))  # type: ignore[arg-type]
        return None

    def render(self) -> str:
        """Format as the single-line text placed in an error envelope."""
        line = f"Error {self.code}: {_one_line(self.message)}"
        if self.details:
            line += f" | details: {orjson.dumps(self.details, default=str).decode()}"
        return line

    __str__ = render


class ToolException(Exception):
    """Exception wrapping a ToolError, raised by tool bodies for recognized failures."""

    __slots__ = ("error",)

    def __init__(self, error: ToolError) -> None:
        self.error = error
        super().__init__(error.message)

    @classmethod
    def create(
        cls,
        tool_name: str,
        message: str,
        code: ErrorCode = ErrorCode.EXECUTION_ERROR,
        *,
        details: dict[str, object] | None = None,
    ) -> Self:
        return cls(ToolError.create(tool_name, message, code, details=details))

    @classmethod
    def from_exc(cls, tool_name: str, exc: BaseException, context: str = "") -> Self:
        return cls(ToolError.from_exception(tool_name, exc, context))


class DuplicateToolError(ValueError):
    """Raised at startup when two tools share a name."""
