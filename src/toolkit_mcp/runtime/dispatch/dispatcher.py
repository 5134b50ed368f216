"""Tool invocation pipeline.

Each call moves through:

    RECEIVED -> RESOLVED -> ADMITTED -> EXECUTING -> COMPLETED | FAILED

Lookup, argument validation and admission failures short-circuit to FAILED
before any handler or progress reporter exists. Once executing, exactly one
terminal progress event is emitted: complete on return, error on raise or
cancellation.
Both paths produce a ToolResponse; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from toolkit_mcp.foundation.core import BaseTool, ToolDescriptor, ToolResponse
from toolkit_mcp.foundation.errors import Err, ErrorCode, Ok, Result, ToolError, ToolException
from toolkit_mcp.foundation.registry import ToolRegistry
from toolkit_mcp.runtime.progress import NotificationSink, ProgressReporter, new_token
from toolkit_mcp.runtime.ratelimit import CategoryRouter

logger = logging.getLogger("toolkit_mcp.dispatch")


class InvocationState(StrEnum):
    RECEIVED = "received"
    RESOLVED = "resolved"
    ADMITTED = "admitted"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class Invocation:
    """Bookkeeping for one call as it moves through the pipeline."""
    tool_name: str
    state: InvocationState = InvocationState.RECEIVED
    category: str | None = None
    token: str | int | None = None
    error: ToolError | None = None
    started: float = field(default_factory=time.perf_counter)

    def advance(self, state: InvocationState) -> None:
        logger.debug("%s: %s -> %s", self.tool_name, self.state, state)
        self.state = state

    def fail(self, error: ToolError) -> Result[ToolResponse, ToolError]:
        self.error = error
        self.advance(InvocationState.FAILED)
        return Err(error)

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


class Dispatcher:
    """Resolves, admits and executes tool calls.

    Args:
        registry: Tools available for invocation
        router: Category routing and per-category limiters
        notifier: Channel for progress events
        token_factory: Produces progress tokens when the caller supplies none

    Example:
        >>> dispatcher = Dispatcher(registry, CategoryRouter.from_settings(settings.rate_limit), notifier)
        >>> response = await dispatcher.call("generate_uuid", {})
        >>> response.is_error is None
        True
    """

    __slots__ = ("_idle", "_in_flight", "_notifier", "_registry", "_router", "_token_factory")

    def __init__(
        self,
        registry: ToolRegistry,
        router: CategoryRouter,
        notifier: NotificationSink,
        *,
        token_factory: Callable[[], str] = new_token,
    ) -> None:
        self._registry = registry
        self._router = router
        self._notifier = notifier
        self._token_factory = token_factory
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def router(self) -> CategoryRouter:
        return self._router

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def list_tools(self) -> list[ToolDescriptor]:
        return self._registry.list()

    async def call(
        self,
        name: str,
        arguments: dict[str, object] | None = None,
        *,
        progress_token: str | int | None = None,
    ) -> ToolResponse:
        """Invoke a tool and return its envelope. Never raises for tool failures."""
        result = await self.execute(name, arguments, progress_token=progress_token)
        return result.match(ok=lambda response: response, err=ToolResponse.from_error)

    async def execute(
        self,
        name: str,
        arguments: dict[str, object] | None = None,
        *,
        progress_token: str | int | None = None,
    ) -> Result[ToolResponse, ToolError]:
        """Invoke a tool, returning the envelope or the typed error."""
        self._enter()
        inv = Invocation(name)
        try:
            result = await self._execute(inv, arguments, progress_token)
        finally:
            self._exit()

        if result.is_ok():
            logger.info("[%s] OK (%.1fms)", name, inv.elapsed_ms)
        else:
            error = result.unwrap_err()
            logger.warning("[%s] %s (%.1fms): %s", name, error.code, inv.elapsed_ms, error.message)
        return result

    async def _execute(
        self,
        inv: Invocation,
        arguments: dict[str, object] | None,
        progress_token: str | int | None,
    ) -> Result[ToolResponse, ToolError]:
        resolved = self._registry.resolve(inv.tool_name)
        if resolved.is_err():
            return inv.fail(resolved.unwrap_err())
        tool = resolved.unwrap()

        parsed = tool.parse(arguments)
        if parsed.is_err():
            return inv.fail(parsed.unwrap_err())
        inv.advance(InvocationState.RESOLVED)

        inv.category = self._router.category_for(tool.name, tool.category)
        admitted = self._router.limiter(inv.category).check_limit(inv.category)
        if admitted.is_err():
            return inv.fail(admitted.unwrap_err().with_tool(tool.name))
        inv.advance(InvocationState.ADMITTED)

        inv.token = self._token_factory() if progress_token is None else progress_token
        reporter = ProgressReporter(
            self._notifier, inv.token, title=f"Executing {tool.name}", unit="operations",
        )
        inv.advance(InvocationState.EXECUTING)
        return await self._run(inv, tool, parsed.unwrap(), reporter)

    async def _run(
        self,
        inv: Invocation,
        tool: BaseTool[BaseModel],
        params: BaseModel,
        reporter: ProgressReporter,
    ) -> Result[ToolResponse, ToolError]:
        try:
            response = await tool.invoke(params, reporter)
        except asyncio.CancelledError:
            await reporter.error("Cancelled")
            inv.fail(ToolError.create(tool.name, "Cancelled", ErrorCode.EXECUTION_ERROR))
            raise
        except ToolException as e:
            error = e.error.with_tool(tool.name)
        except Exception as e:
            logger.debug("[%s] handler raised", tool.name, exc_info=True)
            error = ToolError.from_exception(tool.name, e)
        else:
            await reporter.complete()
            inv.advance(InvocationState.COMPLETED)
            return Ok(response)

        await reporter.error(error.message)
        return inv.fail(error)

    # ─────────────────────────────────────────────────────────────────
    # Shutdown support
    # ─────────────────────────────────────────────────────────────────

    def _enter(self) -> None:
        self._in_flight += 1
        self._idle.clear()

    def _exit(self) -> None:
        self._in_flight -= 1
        if self._in_flight == 0:
            self._idle.set()

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight invocations. Returns False if the timeout hit first."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout)
        except TimeoutError:
            logger.warning("abandoning %d in-flight invocation(s)", self._in_flight)
            return False
        return True

