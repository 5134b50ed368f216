"""toolkit-mcp-server - a catalog of host, network and utility tools over MCP.

Each call is resolved from the registry, validated, admitted by its
category's sliding-window rate limiter, executed with a progress reporter
and returned as a text envelope. Geolocation lookups are cached.

Quick Start:
    $ toolkit-mcp-server                       # stdio MCP server
    $ TOOLKIT_LOG_FORMAT=json toolkit-mcp-server

Programmatic use:
    >>> from toolkit_mcp import get_settings
    >>> from toolkit_mcp.ext.mcp import ToolkitServer
    >>> server = ToolkitServer(get_settings())
    >>> response = await server.dispatcher.call("hash_data", {"input": "hi"})
    >>> print(response.first_text)
"""

from .foundation import (
    BaseTool,
    DuplicateToolError,
    Err,
    ErrorCode,
    Ok,
    Result,
    ToolError,
    ToolException,
    ToolkitSettings,
    ToolMetadata,
    ToolParams,
    ToolRegistry,
    ToolResponse,
    get_settings,
)
from .runtime import CategoryRouter, Dispatcher, ProgressReporter, RateLimiter

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "BaseTool", "ToolMetadata", "ToolParams", "ToolResponse", "ToolRegistry",
    "ErrorCode", "ToolError", "ToolException", "DuplicateToolError", "Result", "Ok", "Err",
    "ToolkitSettings", "get_settings",
    "CategoryRouter", "Dispatcher", "ProgressReporter", "RateLimiter",
]
