"""Built-in tool catalog.

Each category module exposes a `*_tools()` factory; `build_registry` merges
them into one ToolRegistry at startup.

Example:
    >>> registry = build_registry(get_settings())
    >>> registry.names()[:3]
    ['get_current_time', 'get_system_info', 'get_load_average']
"""

from __future__ import annotations

import httpx

from toolkit_mcp.foundation.config import ToolkitSettings
from toolkit_mcp.foundation.registry import ToolRegistry
from toolkit_mcp.io.cache import TTLCache
from toolkit_mcp.runtime.ratelimit import RateLimiter

from .generator import GenerateQrCodeTool, GenerateUuidTool, generator_tools
from .geo import ClearGeoCacheTool, GeolocateTool, GeoService, geo_tools
from .ipapi import IpApiClient, UpstreamRateLimit
from .network import (
    CheckConnectivityTool,
    GetNetworkInterfacesTool,
    GetPublicIpTool,
    PingHostTool,
    TracerouteTool,
    network_tools,
)
from .security import CompareHashesTool, HashDataTool, security_tools
from .system import GetCurrentTimeTool, GetLoadAverageTool, GetSystemInfoTool, system_tools
from .timezones import ConvertTimezoneTool, ListTimezonesTool, datetime_tools


def build_geo_service(settings: ToolkitSettings, client: IpApiClient) -> GeoService:
    upstream = settings.rate_limit.upstream_geo
    return GeoService(
        client,
        TTLCache(settings.cache.geo_ttl),
        RateLimiter(upstream.max_requests, upstream.window_seconds, message=upstream.message),
    )


def build_registry(
    settings: ToolkitSettings,
    *,
    geo: GeoService | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ToolRegistry:
    """Assemble every built-in tool. Raises DuplicateToolError on name clashes."""
    client = geo.client if geo is not None else IpApiClient.from_settings(settings.http, transport)
    geo = geo or build_geo_service(settings, client)
    return ToolRegistry.from_catalogs(
        system_tools(),
        network_tools(client),
        geo_tools(geo),
        generator_tools(),
        datetime_tools(),
        security_tools(),
    )


__all__ = [
    "build_geo_service", "build_registry",
    "IpApiClient", "UpstreamRateLimit", "GeoService",
    "GetCurrentTimeTool", "GetSystemInfoTool", "GetLoadAverageTool",
    "GetNetworkInterfacesTool", "CheckConnectivityTool", "GetPublicIpTool", "PingHostTool", "TracerouteTool",
    "GeolocateTool", "ClearGeoCacheTool",
    "GenerateUuidTool", "GenerateQrCodeTool",
    "ConvertTimezoneTool", "ListTimezonesTool",
    "HashDataTool", "CompareHashesTool",
    "system_tools", "network_tools", "geo_tools", "generator_tools", "datetime_tools", "security_tools",
]
