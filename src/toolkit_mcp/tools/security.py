"""Hashing tools."""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import TYPE_CHECKING, ClassVar, Literal

from pydantic import ConfigDict, Field

from toolkit_mcp.foundation.core import BaseTool, ToolMetadata, ToolParams

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter

Algorithm = Literal["md5", "sha1", "sha256", "sha512"]
Encoding = Literal["hex", "base64"]


def digest(data: str, algorithm: Algorithm, encoding: Encoding) -> str:
    raw = hashlib.new(algorithm, data.encode()).digest()
    return raw.hex() if encoding == "hex" else base64.b64encode(raw).decode("ascii")


class HashDataParams(ToolParams):
    model_config = ConfigDict(str_strip_whitespace=False)

    input: str = Field(..., description="Text to hash (UTF-8)")
    algorithm: Algorithm = Field(default="sha256", description="Hash algorithm")
    encoding: Encoding = Field(default="hex", description="Output encoding")


class HashDataTool(BaseTool[HashDataParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="hash_data",
        description="Hash text with md5, sha1, sha256 or sha512.",
    )
    params_schema: ClassVar[type[HashDataParams]] = HashDataParams

    async def _run(self, params: HashDataParams, progress: ProgressReporter | None = None) -> dict[str, str]:
        return {
            "input": params.input,
            "algorithm": params.algorithm,
            "encoding": params.encoding,
            "hash": digest(params.input, params.algorithm, params.encoding),
        }


class CompareHashesParams(ToolParams):
    hash1: str = Field(..., description="First hash")
    hash2: str = Field(..., description="Second hash")


class CompareHashesTool(BaseTool[CompareHashesParams]):
    """Constant-time comparison of two hash strings."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="compare_hashes",
        description="Compare two hashes in constant time.",
    )
    params_schema: ClassVar[type[CompareHashesParams]] = CompareHashesParams

    async def _run(self, params: CompareHashesParams, progress: ProgressReporter | None = None) -> dict[str, object]:
        if len(params.hash1) != len(params.hash2):
            return {"match": False, "reason": "Length mismatch"}
        return {
            "match": hmac.compare_digest(params.hash1.encode(), params.hash2.encode()),
            "hash1Length": len(params.hash1),
            "hash2Length": len(params.hash2),
        }


def security_tools() -> list[BaseTool]:
    return [HashDataTool(), CompareHashesTool()]
