"""MCP stdio server for the toolkit.

Wires settings, registry, limiters, notifier and dispatcher together and
exposes them through the official `mcp` SDK's low-level Server:

    tools/list  -> Dispatcher.list_tools()
    tools/call  -> Dispatcher.call() -> CallToolResult

Example:
    >>> from toolkit_mcp.ext.mcp import ToolkitServer
    >>> server = ToolkitServer(get_settings())
    >>> await server.run()            # blocks until stdin closes or SIGTERM

Lifecycle:
    run() starts the notifier drain task and maintenance loop, installs
    SIGINT/SIGTERM handlers and a loop exception handler, then serves
    stdio. Any of those triggers shutdown(): a shutdown notification, stop
    maintenance, drain in-flight calls (bounded by shutdown_timeout), flush
    the notifier.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

import httpx
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from toolkit_mcp.foundation.config import ToolkitSettings
from toolkit_mcp.foundation.core import ToolResponse
from toolkit_mcp.foundation.errors import ErrorCode, ToolError
from toolkit_mcp.runtime.dispatch import Dispatcher
from toolkit_mcp.runtime.maintenance import MaintenanceLoop
from toolkit_mcp.runtime.progress import BufferedNotifier, Notification, NotificationMethod
from toolkit_mcp.runtime.ratelimit import CategoryRouter
from toolkit_mcp.tools import GeoService, IpApiClient, build_geo_service, build_registry

from .session import SessionNotifier

if TYPE_CHECKING:
    from toolkit_mcp.foundation.core import ToolDescriptor
    from toolkit_mcp.foundation.registry import ToolRegistry

logger = logging.getLogger("toolkit_mcp.mcp.server")

SHUTDOWN_REASON = "Server is shutting down"


def to_call_result(response: ToolResponse) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=c.text) for c in response.content],
        isError=bool(response.is_error),
    )


def to_mcp_tool(descriptor: ToolDescriptor) -> types.Tool:
    return types.Tool(
        name=descriptor.name,
        description=descriptor.description,
        inputSchema=descriptor.input_schema,
    )


class ToolkitServer:
    """The toolkit as an MCP server.

    Args:
        settings: Root settings
        registry: Tool registry; built from the catalog when omitted
        geo: Geolocation service whose cache and upstream budget are swept;
            built alongside the catalog when `registry` is omitted
        transport: httpx transport for the ip-api client (tests only)
    """

    def __init__(
        self,
        settings: ToolkitSettings,
        registry: ToolRegistry | None = None,
        *,
        geo: GeoService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        if registry is None:
            geo = geo or build_geo_service(settings, IpApiClient.from_settings(settings.http, transport))
            registry = build_registry(settings, geo=geo)
        self._registry = registry
        self._router = CategoryRouter.from_settings(settings.rate_limit)
        self._session = SessionNotifier()
        self._notifier = BufferedNotifier(self._session, settings.notifications.queue_size)
        self._dispatcher = Dispatcher(self._registry, self._router, self._notifier)
        self._maintenance = MaintenanceLoop(settings.cache.sweep_interval, {"rate-limits": self._router.cleanup})
        if geo is not None:
            self._maintenance.add("upstream-geo", geo.upstream.cleanup)
            self._maintenance.add("geo-cache", geo.cache.prune)
        self._shutting_down = False
        self._stop = asyncio.Event()
        self._server: Server = Server(settings.server.name, version=settings.server.version)
        self._register_handlers()

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def session(self) -> SessionNotifier:
        return self._session

    @property
    def notifier(self) -> BufferedNotifier:
        return self._notifier

    @property
    def maintenance(self) -> MaintenanceLoop:
        return self._maintenance

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    # ═════════════════════════════════════════════════════════════════════════
    # Request handlers
    # ═════════════════════════════════════════════════════════════════════════

    def _register_handlers(self) -> None:
        @self._server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return self.list_tools()

        async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
            return types.ServerResult(await self.handle_call_tool(req))

        self._server.request_handlers[types.CallToolRequest] = call_tool

    def list_tools(self) -> list[types.Tool]:
        return [to_mcp_tool(d) for d in self._dispatcher.list_tools()]

    def _bind_request_session(self) -> str | int | None:
        """Bind the active session and return the client's progress token, if any."""
        try:
            ctx = self._server.request_context
        except LookupError:
            return None
        self._session.bind(ctx.session)
        return ctx.meta.progressToken if ctx.meta is not None else None

    async def handle_call_tool(self, req: types.CallToolRequest) -> types.CallToolResult:
        token = self._bind_request_session()
        if token is None and req.params.meta is not None:
            token = req.params.meta.progressToken
        name = req.params.name
        try:
            response = await self._dispatcher.call(name, req.params.arguments, progress_token=token)
        except Exception as e:
            logger.exception("server error while handling %s", name)
            await self.report_server_error(e, context=f"tools/call {name}")
            response = ToolResponse.from_error(
                ToolError.create(name, f"Internal server error: {e}", ErrorCode.INTERNAL_ERROR),
            )
        return to_call_result(response)

    async def report_server_error(self, error: BaseException, *, context: str = "") -> None:
        """Emit notifications/server/error unless shutdown is under way."""
        if self._shutting_down:
            return
        params: dict[str, object] = {"error": str(error) or type(error).__name__}
        if context:
            params["context"] = context
        await self._notifier.send(Notification(method=NotificationMethod.SERVER_ERROR, params=params))

    # ═════════════════════════════════════════════════════════════════════════
    # Lifecycle
    # ═════════════════════════════════════════════════════════════════════════

    def request_shutdown(self, reason: str = SHUTDOWN_REASON) -> None:
        if not self._stop.is_set():
            logger.info("shutdown requested: %s", reason)
            self._stop.set()

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, object]) -> None:
        exc = context.get("exception")
        logger.error("unhandled exception in event loop: %s", context.get("message"), exc_info=exc)  # type: ignore[arg-type]
        if isinstance(exc, BaseException) and not self._shutting_down:
            loop.create_task(self.report_server_error(exc, context="event loop"))
        self.request_shutdown("Unhandled exception")

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, f"received {sig.name}")
            except (NotImplementedError, RuntimeError):
                logger.debug("signal handlers unavailable for %s", sig.name)

    async def start(self) -> None:
        self._notifier.start()
        self._maintenance.start()
        logger.info(
            "%s %s ready with %d tools", self._settings.server.name, self._settings.server.version, len(self._registry),
        )

    async def shutdown(self, reason: str = SHUTDOWN_REASON) -> bool:
        """Graceful stop. Returns False if in-flight calls were abandoned."""
        if self._shutting_down:
            return True
        self._shutting_down = True
        await self._notifier.send(
            Notification(method=NotificationMethod.SERVER_SHUTDOWN, params={"reason": SHUTDOWN_REASON}),
        )
        await self._maintenance.stop()
        drained = await self._dispatcher.drain(self._settings.server.shutdown_timeout)
        await self._notifier.stop()
        logger.info("shutdown complete (%s)", reason)
        return drained

    async def run(self) -> None:
        """Serve MCP over stdio until stdin closes, a signal arrives or the loop fails."""
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)
        loop.set_exception_handler(self._on_loop_exception)
        await self.start()

        async with stdio_server() as (read_stream, write_stream):
            serve = asyncio.create_task(
                self._server.run(read_stream, write_stream, self._server.create_initialization_options()),
                name="mcp-serve",
            )
            stop = asyncio.create_task(self._stop.wait(), name="shutdown-wait")
            done, _ = await asyncio.wait({serve, stop}, return_when=asyncio.FIRST_COMPLETED)

            await self.shutdown("stdin closed" if serve in done else "requested")
            for task in (serve, stop):
                task.cancel()
            await asyncio.gather(serve, stop, return_exceptions=True)
            if serve in done and (exc := serve.exception()) is not None:
                raise exc
