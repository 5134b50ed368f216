"""Configuration management using pydantic-settings."""

from .settings import (
    CacheSettings,
    CategoryLimit,
    HttpSettings,
    LoggingSettings,
    NotificationSettings,
    PrefixRule,
    RateLimitSettings,
    ServerSettings,
    ToolkitSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "CategoryLimit",
    "HttpSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PrefixRule",
    "RateLimitSettings",
    "ServerSettings",
    "ToolkitSettings",
    "clear_settings_cache",
    "get_settings",
]
