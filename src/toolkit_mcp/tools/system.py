"""System tools: host facts, load and locale-aware current time."""

from __future__ import annotations

import os
import platform
import sys
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import psutil
from babel import Locale, UnknownLocaleError
from babel.dates import format_datetime
from pydantic import Field

from toolkit_mcp.foundation.core import BaseTool, EmptyParams, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter


def parse_locale(tool_name: str, tag: str) -> Locale:
    """Accept both "en_US" and BCP 47 "en-US" forms."""
    try:
        return Locale.parse(tag.replace("-", "_"))
    except (UnknownLocaleError, ValueError) as e:
        raise ToolException.create(tool_name, f"Unknown locale: {tag}", ErrorCode.INVALID_PARAMS) from e


def load_zone(tool_name: str, key: str) -> ZoneInfo:
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ToolException.create(tool_name, f"Unknown time zone: {key}", ErrorCode.INVALID_PARAMS) from e


class CurrentTimeParams(ToolParams):
    locale: str = Field(default="en_US", description="Locale for formatting, e.g. en_US or de-DE")
    time_zone: str = Field(default="UTC", description="IANA time zone, e.g. Europe/Paris")


class GetCurrentTimeTool(BaseTool[CurrentTimeParams]):
    """Formats the current instant for a locale and zone."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_current_time",
        description="Get the current time formatted for a locale and time zone.",
        category="system",
    )
    params_schema: ClassVar[type[CurrentTimeParams]] = CurrentTimeParams

    async def _run(self, params: CurrentTimeParams, progress: ProgressReporter | None = None) -> str:
        locale = parse_locale(self.name, params.locale)
        zone = load_zone(self.name, params.time_zone)
        now = datetime.now(UTC).astimezone(zone)
        formatted = format_datetime(now, format="medium", tzinfo=zone, locale=locale)
        return f"{formatted} {now.tzname()}"


class GetSystemInfoTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_system_info",
        description="Get platform, architecture, CPU count, memory and uptime of the host.",
        category="system",
    )

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> dict[str, object]:
        memory = psutil.virtual_memory()
        return {
            "platform": sys.platform,
            "arch": platform.machine(),
            "cpus": os.cpu_count() or 0,
            "totalMemory": memory.total,
            "freeMemory": memory.available,
            "uptime": int(time.time() - psutil.boot_time()),
            "pythonVersion": platform.python_version(),
        }


class GetLoadAverageTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_load_average",
        description="Get the 1, 5 and 15 minute system load averages.",
        category="system",
    )

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> dict[str, float]:
        one, five, fifteen = psutil.getloadavg()
        return {"oneMinute": one, "fiveMinutes": five, "fifteenMinutes": fifteen}


def system_tools() -> list[BaseTool]:
    return [GetCurrentTimeTool(), GetSystemInfoTool(), GetLoadAverageTool()]
