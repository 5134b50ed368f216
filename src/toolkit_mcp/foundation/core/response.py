"""Response envelope returned for every invocation, success or failure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Self

import orjson
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ..errors import ToolError


def dumps(payload: object) -> str:
    """Serialize a tool payload as indented JSON text."""
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2, default=str).decode()


class TextContent(BaseModel):
    """One content block of an envelope."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    """Normalized envelope: ordered content blocks plus an optional error flag.

    Example:
        >>> ToolResponse.from_payload({"ok": True}).to_dict()["content"][0]["type"]
        'text'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool | None = Field(default=None, alias="isError")

    @classmethod
    def from_text(cls, text: str) -> Self:
        return cls(content=[TextContent(text=text)])

    @classmethod
    def from_payload(cls, payload: object) -> Self:
        return cls(content=[TextContent(text=dumps(payload))])

    @classmethod
    def from_error(cls, error: ToolError) -> Self:
        return cls(content=[TextContent(text=error.render())], is_error=True)

    @property
    def first_text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_dict(self) -> dict[str, object]:
        """Wire shape: {"content": [...], "isError": true} with the flag omitted when unset."""
        return self.model_dump(by_alias=True, exclude_none=True)
