"""Console entry point: `toolkit-mcp-server` or `python -m toolkit_mcp`."""

from __future__ import annotations

import asyncio
import logging

from toolkit_mcp.foundation.config import get_settings
from toolkit_mcp.runtime.observability import configure_logging

logger = logging.getLogger("toolkit_mcp")


def main() -> None:
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    from toolkit_mcp.ext.mcp import ToolkitServer

    try:
        asyncio.run(ToolkitServer(settings).run())
    except KeyboardInterrupt:
        logger.info("interrupted")


if __name__ == "__main__":
    main()
