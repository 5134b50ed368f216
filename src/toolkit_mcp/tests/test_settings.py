"""Tests for pydantic-settings configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from toolkit_mcp.foundation.config import (
    CategoryLimit,
    PrefixRule,
    RateLimitSettings,
    ToolkitSettings,
    clear_settings_cache,
    get_settings,
)


def test_defaults(settings: ToolkitSettings) -> None:
    assert settings.server.name == "toolkit-mcp-server"
    assert settings.server.shutdown_timeout == 5.0
    assert settings.logging.format == "text"
    assert settings.cache.geo_ttl == 300.0
    assert settings.http.ip_api_base_url == "http://ip-api.com"
    assert settings.rate_limit.default_category == "system"
    assert settings.rate_limit.upstream_geo.max_requests == 45
    assert {r.prefix: r.category for r in settings.rate_limit.rules}["ping_"] == "network"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOOLKIT_LOG_FORMAT", "json")
    monkeypatch.setenv("TOOLKIT_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("TOOLKIT_SERVER_SHUTDOWN_TIMEOUT", "9")
    settings = ToolkitSettings(_env_file=None)
    assert settings.logging.format == "json"
    assert settings.http.timeout == 2.5
    assert settings.server.shutdown_timeout == 9.0


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first
    monkeypatch.setenv("TOOLKIT_CACHE_GEO_TTL", "60")
    assert get_settings().cache.geo_ttl == 300.0
    clear_settings_cache()
    assert get_settings().cache.geo_ttl == 60.0


def test_rule_to_unknown_category_rejected() -> None:
    with pytest.raises(ValidationError, match="unknown category"):
        RateLimitSettings(rules=[PrefixRule(prefix="x_", category="nowhere")])


def test_default_category_must_exist() -> None:
    with pytest.raises(ValidationError, match="default_category"):
        RateLimitSettings(categories={"network": CategoryLimit(max_requests=5)}, rules=[])


def test_category_limit_validation() -> None:
    with pytest.raises(ValidationError):
        CategoryLimit(max_requests=0)
