"""Tests for ProgressReporter and BufferedNotifier."""

from __future__ import annotations

import asyncio
import re

import pytest

from toolkit_mcp.runtime.progress import (
    BufferedNotifier,
    Notification,
    NotificationMethod,
    NullNotifier,
    ProgressReporter,
    new_token,
)


def test_new_token_format() -> None:
    token = new_token()
    assert re.fullmatch(r"progress-\d+-[0-9a-f]{10}", token)
    assert new_token() != token


# ─────────────────────────────────────────────────────────────────────────────
# ProgressReporter
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_report_with_total(notifier) -> None:
    reporter = ProgressReporter(notifier, "t1", title="Pinging", total=4, unit="packets")
    await reporter.report()
    await reporter.report(2)

    events = notifier.of(NotificationMethod.PROGRESS)
    assert [e.params["current"] for e in events] == [1, 3]
    assert events[0].params == {
        "token": "t1",
        "title": "Pinging",
        "message": "Processing 1/4 packets (25%)",
        "current": 1,
        "total": 4,
        "unit": "packets",
    }
    assert events[1].params["message"] == "Processing 3/4 packets (75%)"


@pytest.mark.asyncio
async def test_report_without_total_and_custom_message(notifier) -> None:
    reporter = ProgressReporter(notifier, "t1", title="Work")
    await reporter.report()
    await reporter.report(message="halfway")
    messages = [e.params["message"] for e in notifier.sent]
    assert messages == ["Processed 1 items", "halfway"]


@pytest.mark.asyncio
async def test_complete_default_message(notifier) -> None:
    reporter = ProgressReporter(notifier, "t1", title="Work", unit="operations")
    await reporter.report()
    await reporter.complete()
    done = notifier.of(NotificationMethod.PROGRESS_COMPLETE)
    assert done[0].params == {"token": "t1", "message": "Completed processing 1 operations"}
    assert reporter.finished


@pytest.mark.asyncio
async def test_error_carries_message(notifier) -> None:
    reporter = ProgressReporter(notifier, "t1", title="Work")
    await reporter.error(ValueError("disk full"))
    assert notifier.of(NotificationMethod.PROGRESS_ERROR)[0].params == {"token": "t1", "error": "disk full"}


@pytest.mark.asyncio
async def test_only_first_terminal_event_is_sent(notifier, caplog) -> None:
    reporter = ProgressReporter(notifier, "t1", title="Work")
    await reporter.complete()
    with caplog.at_level("WARNING", logger="toolkit_mcp.progress"):
        await reporter.error("late failure")
        await reporter.complete()

    assert notifier.methods() == [NotificationMethod.PROGRESS_COMPLETE]
    assert "already finished" in caplog.text


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed() -> None:
    class Broken:
        async def send(self, notification: Notification) -> None:
            raise ConnectionError("gone")

    reporter = ProgressReporter(Broken(), "t1", title="Work")
    await reporter.report()
    await reporter.complete()
    assert reporter.finished


# ─────────────────────────────────────────────────────────────────────────────
# BufferedNotifier
# ─────────────────────────────────────────────────────────────────────────────

def _event(i: int) -> Notification:
    return Notification(method=NotificationMethod.PROGRESS, params={"token": "t", "current": i})


@pytest.mark.asyncio
async def test_buffered_forwards_in_order(notifier) -> None:
    buffered = BufferedNotifier(notifier, maxsize=10)
    buffered.start()
    for i in range(5):
        await buffered.send(_event(i))
    await buffered.stop()

    assert [n.params["current"] for n in notifier.sent] == [0, 1, 2, 3, 4]
    assert not buffered.running


@pytest.mark.asyncio
async def test_buffered_drops_when_full(notifier) -> None:
    buffered = BufferedNotifier(notifier, maxsize=2)
    for i in range(5):
        await buffered.send(_event(i))

    assert buffered.dropped == 3
    await buffered.flush()
    assert [n.params["current"] for n in notifier.sent] == [0, 1]


@pytest.mark.asyncio
async def test_buffered_send_never_blocks_on_slow_target() -> None:
    release = asyncio.Event()

    class Slow:
        async def send(self, notification: Notification) -> None:
            await release.wait()

    buffered = BufferedNotifier(Slow(), maxsize=1)
    buffered.start()
    await asyncio.wait_for(asyncio.gather(*(buffered.send(_event(i)) for i in range(10))), 1)
    assert buffered.dropped > 0
    release.set()
    await buffered.stop()


@pytest.mark.asyncio
async def test_buffered_survives_target_errors(notifier) -> None:
    class Flaky:
        def __init__(self) -> None:
            self.calls = 0

        async def send(self, notification: Notification) -> None:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("first delivery fails")
            await notifier.send(notification)

    buffered = BufferedNotifier(Flaky())
    buffered.start()
    await buffered.send(_event(0))
    await buffered.send(_event(1))
    await buffered.stop()
    assert [n.params["current"] for n in notifier.sent] == [1]


@pytest.mark.asyncio
async def test_null_notifier_discards() -> None:
    assert await NullNotifier().send(_event(0)) is None


def test_notification_token() -> None:
    assert _event(0).token == "t"
    assert Notification(method=NotificationMethod.SERVER_SHUTDOWN, params={"reason": "x"}).token is None
