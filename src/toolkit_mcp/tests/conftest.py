"""Shared fixtures: fake clock, recording notifier, sample tools, pipeline."""

from __future__ import annotations

from typing import ClassVar

import pytest
from pydantic import Field

from toolkit_mcp.foundation.config import ToolkitSettings, clear_settings_cache
from toolkit_mcp.foundation.core import BaseTool, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException
from toolkit_mcp.foundation.registry import ToolRegistry
from toolkit_mcp.runtime.dispatch import Dispatcher
from toolkit_mcp.runtime.progress import Notification, NotificationMethod
from toolkit_mcp.runtime.ratelimit import CategoryRouter, RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """NotificationSink that keeps everything it is sent."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def methods(self) -> list[NotificationMethod]:
        return [n.method for n in self.sent]

    def of(self, method: NotificationMethod) -> list[Notification]:
        return [n for n in self.sent if n.method is method]


# ─────────────────────────────────────────────────────────────────────────────
# Sample tools
# ─────────────────────────────────────────────────────────────────────────────

class EchoParams(ToolParams):
    text: str = Field(..., min_length=1, description="Text to echo")


class EchoTool(BaseTool[EchoParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(name="echo", description="Echo the input text back")
    params_schema: ClassVar[type[EchoParams]] = EchoParams

    def __init__(self) -> None:
        self.calls = 0

    async def _run(self, params: EchoParams, progress=None) -> str:
        self.calls += 1
        if progress is not None:
            await progress.report(message="echoing")
        return params.text


class BoomTool(BaseTool[EchoParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_system_boom", description="Always fails with a runtime error",
    )
    params_schema: ClassVar[type[EchoParams]] = EchoParams

    async def _run(self, params: EchoParams, progress=None) -> str:
        raise RuntimeError(f"boom: {params.text}")


class RejectTool(BaseTool[EchoParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="reject", description="Raises a recognized tool failure", category="network",
    )
    params_schema: ClassVar[type[EchoParams]] = EchoParams

    async def _run(self, params: EchoParams, progress=None) -> str:
        raise ToolException.create(self.name, "bad host", ErrorCode.INVALID_PARAMS)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> object:
    """Isolate tests from TOOLKIT_* variables and the settings cache."""
    import os
    for key in [k for k in os.environ if k.startswith("TOOLKIT_")]:
        monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings() -> ToolkitSettings:
    return ToolkitSettings(_env_file=None)


@pytest.fixture
def echo() -> EchoTool:
    return EchoTool()


@pytest.fixture
def registry(echo: EchoTool) -> ToolRegistry:
    return ToolRegistry.from_catalogs([echo, BoomTool(), RejectTool()])


@pytest.fixture
def router(clock: FakeClock) -> CategoryRouter:
    return CategoryRouter(
        {
            "system": RateLimiter(5, 60, message="system busy", clock=clock),
            "network": RateLimiter(2, 60, message="network busy", clock=clock),
        },
        rules=[("get_system", "system"), ("ping_", "network")],
        default="system",
    )


@pytest.fixture
def dispatcher(registry: ToolRegistry, router: CategoryRouter, notifier: RecordingNotifier) -> Dispatcher:
    return Dispatcher(registry, router, notifier, token_factory=lambda: "tok-1")
