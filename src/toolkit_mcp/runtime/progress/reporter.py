"""Per-invocation progress reporting.

A ProgressReporter belongs to exactly one invocation. It emits any number
of progress events and at most one terminal event (complete or error).
Delivery failures are logged and swallowed so telemetry can never abort
the operation being reported on.
"""

from __future__ import annotations

import logging
import secrets
import time

from .notifications import Notification, NotificationMethod, NotificationSink

logger = logging.getLogger("toolkit_mcp.progress")


def new_token() -> str:
    """Opaque per-invocation token: progress-<epoch ms>-<random>."""
    return f"progress-{int(time.time() * 1000)}-{secrets.token_hex(5)}"


class ProgressReporter:
    """Emits progress, completion and error events for one invocation.

    Args:
        sink: Notification channel
        token: Token correlating the events to the invocation
        title: Human-readable operation title
        total: Expected number of units, if known
        unit: Name of the unit being counted

    Example:
        >>> reporter = ProgressReporter(sink, new_token(), title="Pinging", total=4, unit="packets")
        >>> await reporter.report()          # Processing 1/4 packets (25%)
        >>> await reporter.complete()        # Completed processing 1 packets
    """

    __slots__ = ("_finished", "_sink", "current", "title", "token", "total", "unit")

    def __init__(
        self,
        sink: NotificationSink,
        token: str | int,
        *,
        title: str,
        total: int | None = None,
        unit: str = "items",
    ) -> None:
        self._sink = sink
        self.token = token
        self.title = title
        self.total = total
        self.unit = unit
        self.current = 0
        self._finished = False

    @property
    def finished(self) -> bool:
        """Whether a terminal event has been emitted."""
        return self._finished

    def default_message(self) -> str:
        if self.total:
            percentage = round(self.current / self.total * 100)
            return f"Processing {self.current}/{self.total} {self.unit} ({percentage}%)"
        return f"Processed {self.current} {self.unit}"

    async def report(self, increment: int = 1, message: str | None = None) -> None:
        """Advance the counter and emit a progress event."""
        self.current += max(0, increment)
        await self._emit(NotificationMethod.PROGRESS, {
            "token": self.token,
            "title": self.title,
            "message": message or self.default_message(),
            "current": self.current,
            "total": self.total,
            "unit": self.unit,
        })

    async def complete(self, message: str | None = None) -> None:
        """Emit the terminal success event."""
        if self._terminate("complete"):
            await self._emit(NotificationMethod.PROGRESS_COMPLETE, {
                "token": self.token,
                "message": message or f"Completed processing {self.current} {self.unit}",
            })

    async def error(self, error: BaseException | str) -> None:
        """Emit the terminal failure event."""
        if self._terminate("error"):
            text = error if isinstance(error, str) else (str(error) or type(error).__name__)
            await self._emit(NotificationMethod.PROGRESS_ERROR, {"token": self.token, "error": text})

    def _terminate(self, kind: str) -> bool:
        if self._finished:
            logger.warning("ignoring %s for %s: already finished", kind, self.token)
            return False
        self._finished = True
        return True

    async def _emit(self, method: NotificationMethod, params: dict[str, object]) -> None:
        try:
            await self._sink.send(Notification(method=method, params=params))
        except Exception:
            logger.exception("failed to send %s for %s", method, self.token)
