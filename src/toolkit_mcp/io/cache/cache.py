"""Generic TTL cache for latency-sensitive lookups.

Entries are replaced wholesale on set and evicted lazily on read once older
than the TTL. `prune()` sweeps expired entries for keys that are never read
again; the maintenance loop calls it on a schedule.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

DEFAULT_TTL: float = 300.0  # 5 minutes
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value and the time it was stored."""
    data: T
    timestamp: float


class TTLCache(Generic[T]):
    """Thread-safe in-memory cache with a fixed TTL.

    Args:
        ttl: Maximum age in seconds of an entry returned by get()
        clock: Monotonic time source (injectable for tests)

    Example:
        >>> cache: TTLCache[str] = TTLCache(ttl=60)
        >>> cache.set("8.8.8.8", "Mountain View")
        >>> cache.get("8.8.8.8")
        'Mountain View'
    """

    __slots__ = ("_clock", "_entries", "_lock", "ttl")

    def __init__(self, ttl: float = DEFAULT_TTL, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.timestamp > self.ttl

    def get(self, key: str) -> T | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def prune(self) -> int:
        """Remove all expired entries. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, v in self._entries.items() if self._expired(v, now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._expired(entry, self._clock())

    @property
    def size(self) -> int:
        """Stored entries, including expired ones not yet pruned."""
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, object]:
        with self._lock:
            now = self._clock()
            expired = sum(1 for v in self._entries.values() if self._expired(v, now))
            return {
                "total_entries": len(self._entries),
                "expired_entries": expired,
                "active_entries": len(self._entries) - expired,
                "ttl": self.ttl,
            }
