"""MCP integration: stdio server and session notifier.

Requires the official `mcp` SDK.
"""

from .server import SHUTDOWN_REASON, ToolkitServer, to_call_result, to_mcp_tool
from .session import ClientSession, SessionNotifier

__all__ = ["SHUTDOWN_REASON", "ClientSession", "SessionNotifier", "ToolkitServer", "to_call_result", "to_mcp_tool"]
