"""Date/time tools: zone conversion and zone listing."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, Literal
from zoneinfo import available_timezones

from babel.dates import format_date, format_datetime, format_time
from pydantic import Field

from toolkit_mcp.foundation.core import BaseTool, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException

from .system import load_zone

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter

DateFormat = Literal["full", "date", "time", "iso"]


def render(moment: datetime, fmt: DateFormat, locale: str = "en_US") -> str:
    """Render an aware datetime in its own zone."""
    match fmt:
        case "iso":
            return moment.isoformat()
        case "date":
            return format_date(moment, format="long", locale=locale)
        case "time":
            return format_time(moment, format="medium", tzinfo=moment.tzinfo, locale=locale)
        case _:
            return format_datetime(moment, format="long", tzinfo=moment.tzinfo, locale=locale)


class ConvertTimezoneParams(ToolParams):
    date: str = Field(..., min_length=1, description="ISO 8601 date/time, e.g. 2024-03-10T14:30:00")
    from_tz: str = Field(..., description="Source IANA time zone (used when the date has no offset)")
    to_tz: str = Field(..., description="Target IANA time zone")
    format: DateFormat = Field(default="full", description="Output format")


class ConvertTimezoneTool(BaseTool[ConvertTimezoneParams]):
    """Reads `date` in `from_tz` (or its own offset) and renders it in `to_tz`."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="convert_timezone",
        description="Convert an ISO date/time from one IANA time zone to another.",
    )
    params_schema: ClassVar[type[ConvertTimezoneParams]] = ConvertTimezoneParams

    async def _run(self, params: ConvertTimezoneParams, progress: ProgressReporter | None = None) -> dict[str, str]:
        source = load_zone(self.name, params.from_tz)
        target = load_zone(self.name, params.to_tz)
        try:
            parsed = datetime.fromisoformat(params.date)
        except ValueError as e:
            raise ToolException.create(
                self.name, f"Invalid date format: {params.date}", ErrorCode.INVALID_PARAMS,
            ) from e

        original = parsed.replace(tzinfo=source) if parsed.tzinfo is None else parsed.astimezone(source)
        converted = original.astimezone(target)
        return {
            "originalDate": render(original, params.format),
            "convertedDate": render(converted, params.format),
            "fromTimezone": params.from_tz,
            "toTimezone": params.to_tz,
        }


class ListTimezonesParams(ToolParams):
    region: str | None = Field(default=None, description="Region prefix filter, e.g. Europe or America/Argentina")


class ListTimezonesTool(BaseTool[ListTimezonesParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="list_timezones",
        description="List IANA time zone names, optionally filtered by region.",
    )
    params_schema: ClassVar[type[ListTimezonesParams]] = ListTimezonesParams

    async def _run(self, params: ListTimezonesParams, progress: ProgressReporter | None = None) -> list[str]:
        zones = sorted(available_timezones())
        if params.region:
            prefix = params.region.rstrip("/") + "/"
            zones = [z for z in zones if z.startswith(prefix) or z == params.region]
        return zones


def datetime_tools() -> list[BaseTool]:
    return [ConvertTimezoneTool(), ListTimezonesTool()]
