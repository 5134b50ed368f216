"""Core tool abstractions and the response envelope."""

from .base import BaseTool, EmptyParams, ToolDescriptor, ToolMetadata, ToolParams
from .response import TextContent, ToolResponse, dumps

__all__ = [
    "BaseTool", "EmptyParams", "ToolDescriptor", "ToolMetadata", "ToolParams",
    "TextContent", "ToolResponse", "dumps",
]
