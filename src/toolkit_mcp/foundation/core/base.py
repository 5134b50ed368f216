"""Core tool abstractions: BaseTool, ToolMetadata, ToolDescriptor.

Every tool is a value implementing one capability interface:
`describe()` for listing, `parse()` for argument validation and
`invoke()` for execution. The registry maps names to these values and the
dispatcher drives them; nothing is resolved by attribute access on names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import Err, ErrorCode, Ok, Result, ToolError
from .response import ToolResponse

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter


class ToolMetadata(BaseModel):
    """Static description of a tool.

    Attributes:
        name: Unique identifier (snake_case, e.g. "ping_host")
        description: What the tool does, shown to clients
        category: Rate-limit category; None defers to the router's prefix rules
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=10)
    category: str | None = None


class ToolDescriptor(BaseModel):
    """Listing entry for a tool: everything but the handler."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    input_schema: dict[str, object] = Field(alias="inputSchema")
    category: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


class ToolParams(BaseModel):
    """Base for tool parameter schemas."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class EmptyParams(ToolParams):
    """Parameter schema for tools with no inputs."""


TParams = TypeVar("TParams", bound=BaseModel)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(parts)


class BaseTool(ABC, Generic[TParams]):
    """Abstract base class for all tools.

    Subclasses define `metadata`, `params_schema` and implement `_run`.
    `_run` returns a ToolResponse, a plain string, or any JSON-serializable
    payload; failures are raised and normalized by the dispatcher.

    Example:
        >>> class EchoParams(ToolParams):
        ...     text: str = Field(..., description="Text to echo")
        ...
        >>> class EchoTool(BaseTool[EchoParams]):
        ...     metadata = ToolMetadata(name="echo", description="Echo the input text back")
        ...     params_schema = EchoParams
        ...
        ...     async def _run(self, params, progress=None):
        ...         return params.text
    """

    metadata: ClassVar[ToolMetadata]
    params_schema: ClassVar[type[BaseModel]] = EmptyParams

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def category(self) -> str | None:
        return self.metadata.category

    # ─────────────────────────────────────────────────────────────────
    # Description
    # ─────────────────────────────────────────────────────────────────

    def input_schema(self) -> dict[str, object]:
        """JSON schema for arguments, stripped of pydantic titles."""
        schema = self.params_schema.model_json_schema()
        properties = {
            name: {k: v for k, v in prop.items() if k != "title"}
            for name, prop in schema.get("properties", {}).items()
        }
        result: dict[str, object] = {"type": "object", "properties": properties}
        if required := schema.get("required"):
            result["required"] = list(required)
        return result

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.metadata.name,
            description=self.metadata.description,
            input_schema=self.input_schema(),
            category=self.metadata.category,
        )

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    def parse(self, arguments: dict[str, object] | None) -> Result[TParams, ToolError]:
        """Validate raw arguments against the params schema."""
        try:
            params = self.params_schema.model_validate(arguments or {})
        except ValidationError as e:
            return Err(ToolError.create(self.name, _format_validation_error(e), ErrorCode.INVALID_PARAMS))
        return Ok(params)  # type: ignore[arg-type]

    @abstractmethod
    async def _run(self, params: TParams, progress: ProgressReporter | None = None) -> object:
        """Execute the tool. Raise on failure."""
        ...

    async def invoke(self, params: TParams, progress: ProgressReporter | None = None) -> ToolResponse:
        """Run the tool and wrap its output in an envelope."""
        result = await self._run(params, progress)
        if isinstance(result, ToolResponse):
            return result
        if isinstance(result, str):
            return ToolResponse.from_text(result)
        return ToolResponse.from_payload(result)
