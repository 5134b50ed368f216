"""Minimal async client for ip-api.com (geolocation and public IP)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from toolkit_mcp.foundation.config import HttpSettings

GEO_FIELDS = (
    "status", "message", "country", "countryCode", "region", "regionName", "city", "zip",
    "lat", "lon", "timezone", "offset", "isp", "org", "as", "query",
)


class UpstreamRateLimit(BaseModel):
    """ip-api's own budget as reported in X-Rl / X-Ttl response headers."""

    model_config = ConfigDict(frozen=True)

    remaining: int = 0
    ttl: int = 0

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Self:
        def _int(name: str) -> int:
            try:
                return int(headers.get(name, "0"))
            except ValueError:
                return 0
        return cls(remaining=_int("X-Rl"), ttl=_int("X-Ttl"))


class IpApiClient:
    """Thin wrapper over httpx for the two ip-api endpoints used here.

    Args:
        base_url: Service root, e.g. "http://ip-api.com"
        timeout: Request timeout in seconds
        user_agent: User-Agent header value
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    __slots__ = ("_base_url", "_timeout", "_transport", "_user_agent")

    def __init__(
        self,
        base_url: str = "http://ip-api.com",
        *,
        timeout: float = 10.0,
        user_agent: str = "toolkit-mcp-server/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: HttpSettings, transport: httpx.AsyncBaseTransport | None = None) -> Self:
        return cls(
            settings.ip_api_base_url,
            timeout=settings.timeout,
            user_agent=settings.user_agent,
            transport=transport,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        )

    async def geolocate(self, query: str) -> tuple[dict[str, object], UpstreamRateLimit]:
        """Look up an IP address or domain. Raises httpx errors on transport/HTTP failure."""
        async with self._client() as client:
            resp = await client.get(f"/json/{quote(query, safe='')}", params={"fields": ",".join(GEO_FIELDS)})
            resp.raise_for_status()
            return resp.json(), UpstreamRateLimit.from_headers(resp.headers)

    async def public_ip(self) -> str:
        async with self._client() as client:
            resp = await client.get("/json/", params={"fields": "query"})
            resp.raise_for_status()
            return str(resp.json()["query"])
