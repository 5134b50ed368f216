"""Sliding-window rate limiter keyed by string.

Each key owns a deque of admission timestamps. A request is admitted when
fewer than `max_requests` timestamps are younger than `window_seconds`.
Nothing is queued: every check answers accept or reject immediately.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

from toolkit_mcp.foundation.errors import Err, Ok, Result, ToolError

T = TypeVar("T")

DEFAULT_MESSAGE = "Rate limit exceeded. Please try again later."


class RateLimiter:
    """Thread-safe sliding-window counter.

    Args:
        max_requests: Admissions allowed per window
        window_seconds: Length of the trailing window
        message: Error message for rejected requests
        clock: Monotonic time source (injectable for tests)

    Example:
        >>> limiter = RateLimiter(max_requests=2, window_seconds=60)
        >>> limiter.check_limit("geo").is_ok(), limiter.check_limit("geo").is_ok()
        (True, True)
        >>> limiter.check_limit("geo").unwrap_err().code
        <ErrorCode.RATE_LIMITED: 'RATE_LIMITED'>
    """

    __slots__ = ("_clock", "_lock", "_requests", "max_requests", "message", "window_seconds")

    def __init__(
        self,
        max_requests: int = 45,
        window_seconds: float = 60.0,
        *,
        message: str = DEFAULT_MESSAGE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> list[float]:
        """Timestamps still inside the window, without mutating state."""
        return [t for t in self._requests.get(key, ()) if now - t < self.window_seconds]

    def _prune_unlocked(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] >= self.window_seconds:
            bucket.popleft()

    def check_limit(self, key: str) -> Result[int, ToolError]:
        """Admit or reject one request for `key`.

        Returns Ok(remaining) after recording the request, or Err(RATE_LIMITED)
        with `resetInSeconds` until the oldest counted request leaves the window.
        """
        with self._lock:
            now = self._clock()
            bucket = self._requests.setdefault(key, deque())
            self._prune_unlocked(bucket, now)
            if len(bucket) >= self.max_requests:
                reset = max(1, math.ceil(bucket[0] + self.window_seconds - now))
                return Err(ToolError.rate_limited(key, self.message, reset))
            bucket.append(now)
            return Ok(self.max_requests - len(bucket))

    async def with_rate_limit(self, key: str, operation: Callable[[], Awaitable[T]]) -> Result[T, ToolError]:
        """Check the limit, then await `operation` only if admitted."""
        admitted = self.check_limit(key)
        if admitted.is_err():
            return Err(admitted.unwrap_err())
        return Ok(await operation())

    def remaining_requests(self, key: str) -> int:
        """Admissions left in the current window. Read-only."""
        with self._lock:
            return max(0, self.max_requests - len(self._live(key, self._clock())))

    def time_to_reset(self, key: str) -> float:
        """Seconds until the oldest counted request expires (0 if none). Read-only."""
        with self._lock:
            now = self._clock()
            live = self._live(key, now)
            if not live:
                return 0.0
            return max(0.0, live[0] + self.window_seconds - now)

    def cleanup(self) -> int:
        """Drop keys whose window has fully expired. Returns count removed."""
        with self._lock:
            now = self._clock()
            removed = 0
            for key in list(self._requests):
                bucket = self._requests[key]
                self._prune_unlocked(bucket, now)
                if not bucket:
                    del self._requests[key]
                    removed += 1
            return removed

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._requests)
