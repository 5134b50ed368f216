"""Network tools: interfaces, connectivity, public IP, ping and traceroute.

ping and traceroute shell out to the platform binaries with an argv list
(never a shell string) and stream their output line by line so each reply
or hop is reported as progress.
"""

from __future__ import annotations

import asyncio
import logging
import re
import socket
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, ClassVar

import psutil
from pydantic import Field, field_validator

from toolkit_mcp.foundation.core import BaseTool, EmptyParams, ToolMetadata, ToolParams
from toolkit_mcp.foundation.errors import ErrorCode, ToolException

from .ipapi import IpApiClient

if TYPE_CHECKING:
    from toolkit_mcp.runtime.progress import ProgressReporter

logger = logging.getLogger("toolkit_mcp.tools.network")

IS_WINDOWS = sys.platform == "win32"

# Hostnames, IPv4 and IPv6 literals (with optional zone id)
_HOST_RE = re.compile(r"^[A-Za-z0-9_.:%\-]+$")
_PING_REPLY_RE = re.compile(r"bytes from|reply from", re.IGNORECASE)
_HOP_RE = re.compile(r"^\s*\d+\s")

_FAMILIES: dict[int, str] = {socket.AF_INET: "IPv4", socket.AF_INET6: "IPv6", psutil.AF_LINK: "MAC"}


def validate_host(value: str) -> str:
    if not value or value.startswith("-") or not _HOST_RE.match(value):
        raise ValueError("must be a hostname or IP address")
    return value


class HostParams(ToolParams):
    host: str = Field(..., min_length=1, max_length=253, description="Hostname or IP address")

    @field_validator("host")
    @classmethod
    def _check_host(cls, v: str) -> str:
        return validate_host(v)


class ConnectivityParams(HostParams):
    port: int = Field(..., ge=1, le=65535, description="TCP port")
    timeout: int = Field(default=5000, ge=1, le=60000, description="Timeout in milliseconds")


class PingParams(HostParams):
    count: int = Field(default=4, ge=1, le=100, description="Number of echo requests")


class TracerouteParams(HostParams):
    pass


# ─────────────────────────────────────────────────────────────────────────────
# Subprocess helper
# ─────────────────────────────────────────────────────────────────────────────

async def run_command(argv: Sequence[str], on_line: Callable[[str], Awaitable[None]] | None = None) -> str:
    """Run argv, feeding each stdout line to `on_line`. Returns the full stdout.

    Raises RuntimeError carrying stderr (or stdout) when the exit status is non-zero.
    """
    logger.debug("exec %s", argv)
    proc = await asyncio.create_subprocess_exec(
        *argv, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE,
    )
    stdout_pipe, stderr_pipe = proc.stdout, proc.stderr
    if stdout_pipe is None or stderr_pipe is None:
        raise RuntimeError(f"no output pipes for {argv[0]}")
    lines: list[str] = []
    try:
        async for raw in stdout_pipe:
            line = raw.decode(errors="replace").rstrip()
            lines.append(line)
            if on_line is not None:
                await on_line(line)
        stderr = (await stderr_pipe.read()).decode(errors="replace").strip()
        code = await proc.wait()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        await asyncio.shield(proc.wait())
        raise
    stdout = "\n".join(lines)
    if code != 0:
        raise RuntimeError(stderr or stdout or f"exit status {code}")
    return stdout


# ─────────────────────────────────────────────────────────────────────────────
# Tools
# ─────────────────────────────────────────────────────────────────────────────

class GetNetworkInterfacesTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_network_interfaces",
        description="List network interfaces with their addresses.",
        category="network",
    )

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> dict[str, object]:
        return {
            name: [
                {
                    "address": addr.address,
                    "netmask": addr.netmask,
                    "family": _FAMILIES.get(addr.family, str(addr.family)),
                    "broadcast": addr.broadcast,
                }
                for addr in addrs
            ]
            for name, addrs in psutil.net_if_addrs().items()
        }


class CheckConnectivityTool(BaseTool[ConnectivityParams]):
    """TCP connect probe. Failures are part of the result, not errors."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="check_connectivity",
        description="Check whether a TCP connection can be opened to host:port.",
        category="network",
    )
    params_schema: ClassVar[type[ConnectivityParams]] = ConnectivityParams

    async def _run(self, params: ConnectivityParams, progress: ProgressReporter | None = None) -> dict[str, object]:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(params.host, params.port), params.timeout / 1000,
            )
        except TimeoutError:
            return {"connected": False, "error": "Connection timed out"}
        except OSError as e:
            return {"connected": False, "error": str(e) or type(e).__name__}
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return {"connected": True}


class GetPublicIpTool(BaseTool[EmptyParams]):
    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="get_public_ip",
        description="Get the public IP address of this host as seen by ip-api.com.",
        category="network",
    )

    def __init__(self, client: IpApiClient) -> None:
        self._client = client

    async def _run(self, params: EmptyParams, progress: ProgressReporter | None = None) -> dict[str, str]:
        try:
            ip = await self._client.public_ip()
        except Exception as e:
            raise ToolException.from_exc(self.name, e, "Failed to get public IP") from e
        return {"ip": ip}


class PingHostTool(BaseTool[PingParams]):
    """Runs the system ping and reports each echo reply as progress."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="ping_host",
        description="Ping a host with ICMP echo requests and return the raw output.",
        category="network",
    )
    params_schema: ClassVar[type[PingParams]] = PingParams

    @staticmethod
    def argv(host: str, count: int) -> list[str]:
        return ["ping", "-n" if IS_WINDOWS else "-c", str(count), host]

    async def _run(self, params: PingParams, progress: ProgressReporter | None = None) -> str:
        replies = 0

        async def on_line(line: str) -> None:
            nonlocal replies
            if progress is not None and _PING_REPLY_RE.search(line):
                replies += 1
                await progress.report(message=f"Reply {replies}/{params.count} from {params.host}")

        if progress is not None:
            progress.total, progress.unit = params.count, "packets"
        try:
            return await run_command(self.argv(params.host, params.count), on_line)
        except (OSError, RuntimeError) as e:
            raise ToolException.create(self.name, f"Ping failed: {e}", ErrorCode.EXECUTION_ERROR) from e


class TracerouteTool(BaseTool[TracerouteParams]):
    """Runs the system traceroute and reports each hop as progress."""

    metadata: ClassVar[ToolMetadata] = ToolMetadata(
        name="traceroute",
        description="Trace the network route to a host and return the raw output.",
        category="network",
    )
    params_schema: ClassVar[type[TracerouteParams]] = TracerouteParams

    @staticmethod
    def argv(host: str) -> list[str]:
        return ["tracert", host] if IS_WINDOWS else ["traceroute", host]

    async def _run(self, params: TracerouteParams, progress: ProgressReporter | None = None) -> str:
        async def on_line(line: str) -> None:
            if progress is not None and _HOP_RE.match(line):
                await progress.report(message=f"Hop: {line.strip()}")

        if progress is not None:
            progress.unit = "hops"
        try:
            return await run_command(self.argv(params.host), on_line)
        except (OSError, RuntimeError) as e:
            raise ToolException.create(self.name, f"Traceroute failed: {e}", ErrorCode.EXECUTION_ERROR) from e


def network_tools(client: IpApiClient) -> list[BaseTool]:
    return [
        GetNetworkInterfacesTool(),
        CheckConnectivityTool(),
        GetPublicIpTool(client),
        PingHostTool(),
        TracerouteTool(),
    ]
