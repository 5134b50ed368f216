"""Foundation - core building blocks for toolkit_mcp.

Contains: tool abstractions, response envelope, errors and Result, registry, config.
"""

from __future__ import annotations

from .config import ToolkitSettings, clear_settings_cache, get_settings
from .core import BaseTool, EmptyParams, ToolDescriptor, ToolMetadata, ToolParams, ToolResponse
from .errors import DuplicateToolError, Err, ErrorCode, Ok, Result, ToolError, ToolException
from .registry import ToolRegistry

__all__ = [
    "BaseTool", "EmptyParams", "ToolDescriptor", "ToolMetadata", "ToolParams", "ToolResponse",
    "DuplicateToolError", "ErrorCode", "ToolError", "ToolException", "Result", "Ok", "Err",
    "ToolRegistry",
    "ToolkitSettings", "get_settings", "clear_settings_cache",
]
