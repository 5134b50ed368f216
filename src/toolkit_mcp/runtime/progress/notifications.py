"""One-way notification channel toward the outer transport.

Senders never depend on delivery: every sink either succeeds or its failure
is logged by the sender. BufferedNotifier makes `send` non-blocking by
parking events on a bounded queue drained by a background task.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger("toolkit_mcp.notifications")


class NotificationMethod(StrEnum):
    """Event method names."""
    PROGRESS = "notifications/progress"
    PROGRESS_COMPLETE = "notifications/progress/complete"
    PROGRESS_ERROR = "notifications/progress/error"
    SERVER_ERROR = "notifications/server/error"
    SERVER_SHUTDOWN = "notifications/server/shutdown"


class Notification(BaseModel):
    """A fire-and-forget event: method name plus params."""

    model_config = ConfigDict(frozen=True)

    method: NotificationMethod
    params: dict[str, object] = Field(default_factory=dict)

    @property
    def token(self) -> str | int | None:
        token = self.params.get("token")
        if isinstance(token, str | int):
            return token
        return None


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can deliver a notification."""

    async def send(self, notification: Notification) -> None: ...


class NullNotifier:
    """Sink that discards everything."""

    async def send(self, notification: Notification) -> None:
        return None


class BufferedNotifier:
    """Bounded best-effort queue in front of another sink.

    `send` enqueues without waiting and drops the event (with a warning) when
    the queue is full. A drain task forwards events to the target; delivery
    errors are logged and the drain continues.

    Example:
        >>> notifier = BufferedNotifier(session_sink, maxsize=256)
        >>> notifier.start()
        >>> await notifier.send(Notification(method=NotificationMethod.PROGRESS))
        >>> await notifier.stop()  # flushes what is queued
    """

    __slots__ = ("_dropped", "_queue", "_target", "_task")

    def __init__(self, target: NotificationSink, maxsize: int = 256) -> None:
        self._target = target
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._drain(), name="toolkit-notifier")

    async def send(self, notification: Notification) -> None:
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning("notification queue full, dropping %s", notification.method)

    async def flush(self) -> None:
        """Wait until every queued event has been handed to the target."""
        if self.running:
            await self._queue.join()
        else:
            while not self._queue.empty():
                await self._deliver(self._queue.get_nowait())
                self._queue.task_done()

    async def stop(self) -> None:
        """Flush queued events and stop the drain task."""
        await self.flush()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self._target.send(notification)
        except Exception:
            logger.exception("failed to deliver %s", notification.method)

    async def _drain(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()
