"""Unified error handling for toolkit_mcp.

- ErrorCode: Standard error codes for pipeline and tool failures
- ToolError/ToolException: Structured errors and the exception that carries them
- Result/Ok/Err: Success-or-error values passed between pipeline layers
"""

from .errors import DuplicateToolError, ErrorCode, ToolError, ToolException, classify_exception
from .result import Err, Ok, Result

__all__ = [
    "DuplicateToolError", "ErrorCode", "ToolError", "ToolException", "classify_exception",
    "Result", "Ok", "Err",
]
