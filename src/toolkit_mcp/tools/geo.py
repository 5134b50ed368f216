"""Geolocation tools backed by ip-api.com.

Lookups are cached per query for the configured TTL. Cache misses spend one
unit of a dedicated upstream budget (ip-api allows 45 requests/minute on the
free tier) that is separate from the "geo" category admission limit.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from toolkit_mcp.foundation.core import BaseTool, EmptyParams, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException
from toolkit_mcp.io.cache import TTLCache
from toolkit_mcp.runtime.ratelimit import RateLimiter

from .ipapi import IpApiClient

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter

logger = logging.getLogger("toolkit_mcp.tools.geo")

UPSTREAM_KEY = "ip-api"


class GeoService:
    """Cache + upstream budget + client, shared by the geolocation tools.

    Args:
        client: ip-api client
        cache: Lookup cache keyed by query
        upstream: Limiter guarding calls to ip-api
    """

    __slots__ = ("cache", "client", "upstream")

    def __init__(self, client: IpApiClient, cache: TTLCache[dict[str, object]], upstream: RateLimiter) -> None:
        self.client = client
        self.cache = cache
        self.upstream = upstream

    async def lookup(self, tool_name: str, query: str) -> dict[str, object]:
        if (cached := self.cache.get(query)) is not None:
            logger.debug("geo cache hit: %s", query)
            return {"data": cached, "source": "cache"}

        admitted = self.upstream.check_limit(UPSTREAM_KEY)
        if admitted.is_err():
            error = admitted.unwrap_err()
            raise ToolException.create(
                tool_name,
                f"Rate limit exceeded. Please try again in {error.reset_in_seconds} seconds.",
                ErrorCode.RATE_LIMITED,
                details=error.details,
            )

        try:
            data, rate_limit = await self.client.geolocate(query)
        except Exception as e:
            raise ToolException.from_exc(tool_name, e, "Geolocation failed") from e

        if data.get("status") == "success":
            self.cache.set(query, data)
        else:
            logger.info("geo lookup for %s returned %s: %s", query, data.get("status"), data.get("message"))
        return {"data": data, "rateLimit": rate_limit.model_dump(), "source": "api"}

    def clear(self) -> None:
        self.cache.clear()


class GeolocateParams(ToolParams):
    query: str = Field(..., min_length=1, max_length=253, description="IP address or domain name")


class GeolocateTool(BaseTool[GeolocateParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="geolocate",
        description="Look up the geographic location of an IP address or domain.",
        category="geo",
    )
    params_schema: ClassVar[type[GeolocateParams]] = GeolocateParams

    def __init__(self, service: GeoService) -> None:
        self._service = service

    async def _run(self, params: GeolocateParams, progress: ProgressReporter | None = None) -> dict[str, object]:
        return await self._service.lookup(self.name, params.query)


class ClearGeoCacheTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="clear_geo_cache",
        description="Clear all cached geolocation lookups.",
        category="geo",
    )

    def __init__(self, service: GeoService) -> None:
        self._service = service

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> dict[str, str]:
        self._service.clear()
        return {"message": "Geolocation cache cleared"}


def geo_tools(service: GeoService) -> list[BaseTool]:
    return [GeolocateTool(service), ClearGeoCacheTool(service)]
