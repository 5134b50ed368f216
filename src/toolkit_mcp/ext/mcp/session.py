"""Bridges internal notifications onto an MCP client session.

Progress events become standard `notifications/progress` messages. The
terminal and server-level events have no MCP equivalent, so they travel as
`notifications/message` log entries whose logger name is the internal
method and whose data is the params dict.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from toolkit_mcp.runtime.progress import Notification, NotificationMethod

if TYPE_CHECKING:
    from mcp.types import LoggingLevel

logger = logging.getLogger("toolkit_mcp.mcp.session")

LOG_LEVELS: dict[NotificationMethod, LoggingLevel] = {
    NotificationMethod.PROGRESS_COMPLETE: "info",
    NotificationMethod.PROGRESS_ERROR: "error",
    NotificationMethod.SERVER_ERROR: "error",
    NotificationMethod.SERVER_SHUTDOWN: "notice",
}


class ClientSession(Protocol):
    """The two ServerSession methods this module needs."""

    async def send_progress_notification(
        self,
        progress_token: str | int,
        progress: float,
        total: float | None = None,
        message: str | None = None,
    ) -> None: ...

    async def send_log_message(self, level: LoggingLevel, data: object, logger: str | None = None) -> None: ...


class SessionNotifier:
    """NotificationSink writing to whichever MCP session is currently bound.

    The stdio transport has a single session; it is bound on the first
    request. Events sent before that are dropped with a debug log.
    """

    __slots__ = ("_session",)

    def __init__(self, session: ClientSession | None = None) -> None:
        self._session = session

    @property
    def bound(self) -> bool:
        return self._session is not None

    def bind(self, session: ClientSession) -> None:
        self._session = session

    async def send(self, notification: Notification) -> None:
        if self._session is None:
            logger.debug("no session bound, dropping %s", notification.method)
            return

        if notification.method is NotificationMethod.PROGRESS:
            params = notification.params
            token = notification.token
            if token is None:
                logger.warning("progress event without token dropped")
                return
            total = params.get("total")
            await self._session.send_progress_notification(
                token,
                float(params.get("current", 0)),  # type: ignore[arg-type]
                total=float(total) if total is not None else None,  # type: ignore[arg-type]
                message=str(params["message"]) if params.get("message") else None,
            )
            return

        await self._session.send_log_message(
            LOG_LEVELS.get(notification.method, "info"),
            notification.params,
            logger=str(notification.method),
        )
