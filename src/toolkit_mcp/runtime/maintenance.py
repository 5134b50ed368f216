"""Periodic maintenance for long-lived processes.

Sweeps expired rate-limit windows and cache entries on a fixed interval so
memory stays bounded even for keys that are never touched again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger("toolkit_mcp.maintenance")

Sweep = Callable[[], int]


class MaintenanceLoop:
    """Runs named sweep callables every `interval` seconds.

    Started and stopped explicitly; a failing sweep is logged and the loop
    carries on with the next one.

    Example:
        >>> loop = MaintenanceLoop(60.0, {"limits": router.cleanup, "geo-cache": geo_cache.prune})
        >>> loop.start()
        >>> await loop.stop()
    """

    __slots__ = ("_interval", "_sweeps", "_task")

    def __init__(self, interval: float, sweeps: dict[str, Sweep] | None = None) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._interval = interval
        self._sweeps: dict[str, Sweep] = dict(sweeps or {})
        self._task: asyncio.Task[None] | None = None

    def add(self, name: str, sweep: Sweep) -> None:
        self._sweeps[name] = sweep

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> dict[str, int]:
        """Run every sweep now. Returns items removed per sweep."""
        removed: dict[str, int] = {}
        for name, sweep in self._sweeps.items():
            try:
                removed[name] = sweep()
            except Exception:
                logger.exception("sweep %s failed", name)
        if any(removed.values()):
            logger.debug("maintenance removed %s", removed)
        return removed

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name="toolkit-maintenance")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.run_once()
