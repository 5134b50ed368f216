"""TTL caching for lookup tools."""

from .cache import DEFAULT_TTL, CacheEntry, TTLCache

__all__ = ["DEFAULT_TTL", "CacheEntry", "TTLCache"]
