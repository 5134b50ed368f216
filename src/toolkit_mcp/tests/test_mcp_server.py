"""Tests for the MCP adapter: tool listing, call mapping, notifications, shutdown."""

from __future__ import annotations

import pytest
from mcp import types

from toolkit_mcp.ext.mcp import SHUTDOWN_REASON, SessionNotifier, ToolkitServer
from toolkit_mcp.io.cache import TTLCache
from toolkit_mcp.runtime.dispatch import Dispatcher
from toolkit_mcp.runtime.progress import Notification, NotificationMethod
from toolkit_mcp.runtime.ratelimit import RateLimiter
from toolkit_mcp.tools import GeoService, IpApiClient, build_registry
from toolkit_mcp.tools.geo import UPSTREAM_KEY


class FakeSession:
    """Records what would be written to the MCP client."""

    def __init__(self) -> None:
        self.progress: list[dict] = []
        self.logs: list[dict] = []

    async def send_progress_notification(self, progress_token, progress, total=None, message=None) -> None:
        self.progress.append({"token": progress_token, "progress": progress, "total": total, "message": message})

    async def send_log_message(self, level, data, logger=None) -> None:
        self.logs.append({"level": level, "data": data, "logger": logger})


def call_request(name: str, arguments: dict | None = None, token: str | int | None = None) -> types.CallToolRequest:
    params: dict = {"name": name, "arguments": arguments}
    if token is not None:
        params["_meta"] = {"progressToken": token}
    return types.CallToolRequest(method="tools/call", params=types.CallToolRequestParams.model_validate(params))


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def server(settings, registry, fake_session) -> ToolkitServer:
    server = ToolkitServer(settings, registry)
    server.session.bind(fake_session)
    return server


def test_list_tools_shape(server) -> None:
    tools = server.list_tools()
    assert [t.name for t in tools] == ["echo", "get_system_boom", "reject"]
    assert tools[0].inputSchema["required"] == ["text"]
    assert tools[0].description == "Echo the input text back"


@pytest.mark.asyncio
async def test_call_success(server, fake_session) -> None:
    result = await server.handle_call_tool(call_request("echo", {"text": "hi"}, token="client-tok"))
    assert result.isError is False
    assert result.content[0].text == "hi"

    await server.notifier.flush()
    assert fake_session.progress == [{"token": "client-tok", "progress": 1.0, "total": None, "message": "echoing"}]
    assert fake_session.logs == [{
        "level": "info",
        "data": {"token": "client-tok", "message": "Completed processing 1 operations"},
        "logger": "notifications/progress/complete",
    }]


@pytest.mark.asyncio
async def test_call_failure_maps_to_is_error(server, fake_session) -> None:
    result = await server.handle_call_tool(call_request("get_system_boom", {"text": "x"}))
    assert result.isError is True
    assert result.content[0].text == "Error EXECUTION_ERROR: boom: x"

    await server.notifier.flush()
    assert [log["logger"] for log in fake_session.logs] == ["notifications/progress/error"]
    assert fake_session.logs[0]["level"] == "error"


@pytest.mark.asyncio
async def test_unknown_tool(server, fake_session) -> None:
    result = await server.handle_call_tool(call_request("missing"))
    assert result.isError is True
    assert result.content[0].text == "Error NOT_FOUND: Tool not found: missing"
    await server.notifier.flush()
    assert fake_session.progress == [] and fake_session.logs == []


@pytest.mark.asyncio
async def test_pipeline_crash_becomes_internal_error(server, fake_session, monkeypatch) -> None:
    async def explode(*args, **kwargs):
        raise RuntimeError("dispatcher bug")

    monkeypatch.setattr(Dispatcher, "call", explode)
    result = await server.handle_call_tool(call_request("echo", {"text": "x"}))
    assert result.isError is True
    assert result.content[0].text.startswith("Error INTERNAL_ERROR: Internal server error: dispatcher bug")

    await server.notifier.flush()
    assert fake_session.logs[0]["logger"] == "notifications/server/error"
    assert fake_session.logs[0]["data"]["error"] == "dispatcher bug"


@pytest.mark.asyncio
async def test_shutdown_sequence(server, fake_session) -> None:
    server.notifier.start()
    server.maintenance.start()

    assert await server.shutdown() is True
    assert server.shutting_down
    assert not server.notifier.running
    assert not server.maintenance.running
    assert fake_session.logs == [{
        "level": "notice",
        "data": {"reason": SHUTDOWN_REASON},
        "logger": "notifications/server/shutdown",
    }]

    # server errors are suppressed once shutdown has begun
    await server.report_server_error(RuntimeError("late"))
    await server.notifier.flush()
    assert len(fake_session.logs) == 1


def test_request_shutdown_sets_flag_once(server) -> None:
    server.request_shutdown("test")
    server.request_shutdown("again")
    assert server._stop.is_set()


# ─────────────────────────────────────────────────────────────────────────────
# SessionNotifier
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_session_notifier_unbound_drops() -> None:
    notifier = SessionNotifier()
    assert not notifier.bound
    await notifier.send(Notification(method=NotificationMethod.SERVER_SHUTDOWN, params={"reason": "x"}))


@pytest.mark.asyncio
async def test_session_notifier_progress_with_total(fake_session) -> None:
    notifier = SessionNotifier(fake_session)
    await notifier.send(Notification(
        method=NotificationMethod.PROGRESS,
        params={"token": 3, "current": 2, "total": 4, "message": "Processing 2/4 packets (50%)"},
    ))
    assert fake_session.progress == [
        {"token": 3, "progress": 2.0, "total": 4.0, "message": "Processing 2/4 packets (50%)"},
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Maintenance wiring
# ─────────────────────────────────────────────────────────────────────────────

def test_injected_registry_sweeps_only_rate_limits(server) -> None:
    assert set(server.maintenance.run_once()) == {"rate-limits"}


def test_sweeps_target_the_geo_service_in_use(settings, clock) -> None:
    geo = GeoService(
        IpApiClient.from_settings(settings.http),
        TTLCache(300, clock=clock),
        RateLimiter(45, 60, clock=clock),
    )
    geo.cache.set("8.8.8.8", {"status": "success"})
    geo.upstream.check_limit(UPSTREAM_KEY)
    clock.advance(301)

    server = ToolkitServer(settings, build_registry(settings, geo=geo), geo=geo)
    removed = server.maintenance.run_once()

    assert removed == {"rate-limits": 0, "upstream-geo": 1, "geo-cache": 1}
    assert geo.cache.size == 0


def test_default_server_sweeps_its_own_geo_service(settings) -> None:
    server = ToolkitServer(settings)
    assert set(server.maintenance.run_once()) == {"rate-limits", "upstream-geo", "geo-cache"}
