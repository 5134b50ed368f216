"""Generator tools: UUIDs and QR codes."""

from __future__ import annotations

import io
import uuid
from typing import TYPE_CHECKING, ClassVar, Literal

import segno
from pydantic import Field

from toolkit_mcp.foundation.core import BaseTool, EmptyParams, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter

QrOutput = Literal["terminal", "svg", "base64"]
ErrorCorrection = Literal["L", "M", "Q", "H"]


class GenerateUuidTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="generate_uuid",
        description="Generate a random version 4 UUID.",
    )

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> str:
        return str(uuid.uuid4())


class QrCodeParams(ToolParams):
    data: str = Field(..., min_length=1, max_length=4096, description="Data to encode")
    type: QrOutput = Field(default="terminal", description="Output format")
    error_correction_level: ErrorCorrection = Field(default="M", description="Error correction level")


class GenerateQrCodeTool(BaseTool[QrCodeParams]):
    """Encodes text as a QR code.

    Output formats:
        terminal: Unicode block art suitable for a monospace console
        svg: Inline SVG document
        base64: PNG as a `data:image/png;base64,...` URI
    """

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="generate_qr_code",
        description="Generate a QR code as terminal art, SVG or a base64 PNG data URI.",
    )
    params_schema: ClassVar[type[QrCodeParams]] = QrCodeParams

    async def _run(self, params: QrCodeParams, progress: ProgressReporter | None = None) -> str:
        try:
            qr = segno.make(params.data, error=params.error_correction_level, micro=False)
        except segno.DataOverflowError as e:
            raise ToolException.create(
                self.name, f"QR code generation failed: {e}", ErrorCode.INVALID_PARAMS,
            ) from e

        match params.type:
            case "svg":
                return qr.svg_inline(scale=4)
            case "base64":
                return qr.png_data_uri(scale=4)
            case _:
                buf = io.StringIO()
                qr.terminal(out=buf, compact=True)
                return buf.getvalue()


def generator_tools() -> list[BaseTool]:
    return [GenerateUuidTool(), GenerateQrCodeTool()]
