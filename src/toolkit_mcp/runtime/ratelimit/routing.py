"""Rate-limit category routing.

A tool's category is, in order of precedence: the category it declares in
its metadata, the first prefix rule matching its name, or the default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Self

from .limiter import RateLimiter

if TYPE_CHECKING:
    from toolkit_mcp.foundation.config import RateLimitSettings

logger = logging.getLogger("toolkit_mcp.ratelimit")


class CategoryRouter:
    """Maps tools to categories and categories to their limiters.

    Args:
        limiters: One limiter per category name
        rules: Ordered (prefix, category) pairs
        default: Category used when nothing else matches
    """

    __slots__ = ("_default", "_limiters", "_rules")

    def __init__(
        self,
        limiters: Mapping[str, RateLimiter],
        rules: Sequence[tuple[str, str]] = (),
        default: str = "system",
    ) -> None:
        if default not in limiters:
            raise ValueError(f"default category {default!r} has no limiter")
        for prefix, category in rules:
            if category not in limiters:
                raise ValueError(f"rule {prefix!r} routes to unknown category {category!r}")
        self._limiters = dict(limiters)
        self._rules = tuple(rules)
        self._default = default

    @classmethod
    def from_settings(cls, settings: RateLimitSettings) -> Self:
        limiters = {
            name: RateLimiter(limit.max_requests, limit.window_seconds, message=limit.message)
            for name, limit in settings.categories.items()
        }
        rules = [(rule.prefix, rule.category) for rule in settings.rules]
        return cls(limiters, rules, settings.default_category)

    @property
    def default(self) -> str:
        return self._default

    @property
    def categories(self) -> list[str]:
        return list(self._limiters)

    def category_for(self, tool_name: str, declared: str | None = None) -> str:
        if declared is not None:
            if declared in self._limiters:
                return declared
            logger.warning("tool %s declares unknown category %r, using %r", tool_name, declared, self._default)
            return self._default
        for prefix, category in self._rules:
            if tool_name.startswith(prefix):
                return category
        return self._default

    def limiter(self, category: str) -> RateLimiter:
        return self._limiters[category]

    def cleanup(self) -> int:
        """Sweep every limiter. Returns total keys removed."""
        return sum(limiter.cleanup() for limiter in self._limiters.values())
