"""Environment-based configuration using pydantic-settings.

Example:
    >>> from toolkit_mcp.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.rate_limit.categories["geo"].max_requests
    45

    # Or with environment variables:
    # TOOLKIT_LOG_LEVEL=DEBUG
    # TOOLKIT_CACHE_GEO_TTL=600
    # TOOLKIT_RATE_LIMIT__DEFAULT_CATEGORY=network
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """MCP server identity and lifecycle."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_SERVER_", extra="ignore")

    name: str = "toolkit-mcp-server"
    version: str = "1.0.0"
    shutdown_timeout: PositiveFloat = Field(default=5.0, description="Seconds to wait for in-flight calls")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"


class CacheSettings(BaseSettings):
    """Lookup cache configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_CACHE_", extra="ignore")

    geo_ttl: PositiveFloat = Field(default=300.0, description="Geolocation cache TTL in seconds")
    sweep_interval: PositiveFloat = Field(default=60.0, description="Seconds between maintenance sweeps")


class CategoryLimit(BaseModel):
    """Sliding-window budget for one tool category."""

    model_config = ConfigDict(frozen=True)

    max_requests: PositiveInt
    window_seconds: PositiveFloat = 60.0
    message: str = "Rate limit exceeded. Please try again later."


class PrefixRule(BaseModel):
    """Routes tools whose name starts with `prefix` to `category`."""

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(..., min_length=1)
    category: str


def _default_categories() -> dict[str, CategoryLimit]:
    return {
        "system": CategoryLimit(
            max_requests=100,
            message="Too many system operations. Please try again in a moment.",
        ),
        "network": CategoryLimit(
            max_requests=50,
            message="Too many network operations. Please try again in a moment.",
        ),
        "geo": CategoryLimit(
            max_requests=45,
            message="IP-API rate limit exceeded. Please try again in a moment.",
        ),
    }


def _default_rules() -> list[PrefixRule]:
    return [
        PrefixRule(prefix="get_system", category="system"),
        PrefixRule(prefix="get_network", category="network"),
        PrefixRule(prefix="ping_", category="network"),
        PrefixRule(prefix="traceroute", category="network"),
        PrefixRule(prefix="geolocate", category="geo"),
    ]


class RateLimitSettings(BaseSettings):
    """Per-category rate limits and routing rules."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_RATE_LIMIT_", extra="ignore")

    categories: dict[str, CategoryLimit] = Field(default_factory=_default_categories)
    rules: list[PrefixRule] = Field(default_factory=_default_rules)
    default_category: str = "system"
    upstream_geo: CategoryLimit = Field(
        default_factory=lambda: CategoryLimit(
            max_requests=45,
            message="Rate limit exceeded for the geolocation service.",
        ),
        description="Budget for calls to ip-api.com, independent of the geo category",
    )

    @model_validator(mode="after")
    def _check_categories(self) -> RateLimitSettings:
        known = set(self.categories)
        if self.default_category not in known:
            raise ValueError(f"default_category {self.default_category!r} has no limit configured")
        for rule in self.rules:
            if rule.category not in known:
                raise ValueError(f"rule for prefix {rule.prefix!r} targets unknown category {rule.category!r}")
        return self


class HttpSettings(BaseSettings):
    """Outbound HTTP client configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_HTTP_", extra="ignore")

    timeout: PositiveFloat = Field(default=10.0, description="Request timeout in seconds")
    ip_api_base_url: str = "http://ip-api.com"
    user_agent: str = "toolkit-mcp-server/1.0"


class NotificationSettings(BaseSettings):
    """Outbound notification queue."""

    model_config = SettingsConfigDict(env_prefix="TOOLKIT_NOTIFY_", extra="ignore")

    queue_size: PositiveInt = Field(default=256, description="Events buffered before dropping")


class ToolkitSettings(BaseSettings):
    """Root settings, loaded from TOOLKIT_* environment variables and .env.

    Example environment variables:
        TOOLKIT_LOG_FORMAT=json
        TOOLKIT_HTTP_TIMEOUT=5
        TOOLKIT_SERVER_SHUTDOWN_TIMEOUT=10
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)


@lru_cache(maxsize=1)
def get_settings() -> ToolkitSettings:
    """Get the process-wide settings instance (cached)."""
    return ToolkitSettings()


def clear_settings_cache() -> None:
    """Force the next get_settings() call to reload from the environment."""
    get_settings.cache_clear()
