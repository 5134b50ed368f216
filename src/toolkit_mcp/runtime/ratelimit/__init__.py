"""Sliding-window rate limiting and category routing."""

from .limiter import RateLimiter
from .routing import CategoryRouter

__all__ = ["CategoryRouter", "RateLimiter"]
