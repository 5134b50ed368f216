"""Central registry mapping tool names to tools.

The registry is assembled once at startup from category catalogs and is
read-only afterwards. Names are unique: registering a name twice is a
startup defect and raises DuplicateToolError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Self

from pydantic import BaseModel

from ..core import BaseTool, ToolDescriptor
from ..errors import DuplicateToolError, Err, Ok, Result, ToolError

logger = logging.getLogger("toolkit_mcp.registry")

AnyTool = BaseTool[BaseModel]


class ToolRegistry:
    """Lookup table of all available tools, in registration order.

    Example:
        >>> registry = ToolRegistry.from_catalogs(system_tools(), network_tools())
        >>> registry.resolve("ping_host").is_ok()
        True
        >>> [d.name for d in registry.list()][:1]
        ['get_current_time']
    """

    __slots__ = ("_tools",)

    def __init__(self) -> None:
        self._tools: dict[str, AnyTool] = {}

    @classmethod
    def from_catalogs(cls, *catalogs: Iterable[AnyTool]) -> Self:
        registry = cls()
        registry.merge(*catalogs)
        return registry

    def register(self, tool: AnyTool) -> None:
        """Register a tool instance. Duplicate names are rejected."""
        name = tool.metadata.name
        if name in self._tools:
            raise DuplicateToolError(f"Tool '{name}' already registered")
        self._tools[name] = tool
        logger.debug("registered tool %s (category=%s)", name, tool.metadata.category)

    def merge(self, *catalogs: Iterable[AnyTool]) -> None:
        """Register every tool of each catalog."""
        for catalog in catalogs:
            for tool in catalog:
                self.register(tool)

    def get(self, name: str) -> AnyTool | None:
        return self._tools.get(name)

    def resolve(self, name: str) -> Result[AnyTool, ToolError]:
        """Look up a tool by name. Performs no execution."""
        tool = self._tools.get(name)
        return Ok(tool) if tool is not None else Err(ToolError.not_found(name))

    def list(self) -> list[ToolDescriptor]:
        """Descriptors of all tools in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def categories(self) -> set[str]:
        """Explicitly declared categories."""
        return {t.metadata.category for t in self._tools.values() if t.metadata.category}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[AnyTool]:
        return iter(self._tools.values())
