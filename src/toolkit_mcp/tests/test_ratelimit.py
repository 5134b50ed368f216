"""Tests for the sliding-window limiter and category routing."""

from __future__ import annotations

import threading

import pytest

from toolkit_mcp.foundation.config import RateLimitSettings
from toolkit_mcp.foundation.errors import ErrorCode
from toolkit_mcp.runtime.ratelimit import CategoryRouter, RateLimiter


# ─────────────────────────────────────────────────────────────────────────────
# RateLimiter
# ─────────────────────────────────────────────────────────────────────────────

def test_forty_sixth_call_is_rejected(clock) -> None:
    limiter = RateLimiter(45, 60, message="slow down", clock=clock)
    for i in range(45):
        assert limiter.check_limit("geo").unwrap() == 44 - i
        clock.advance(0.1)

    rejected = limiter.check_limit("geo")
    assert rejected.is_err()
    error = rejected.unwrap_err()
    assert error.code is ErrorCode.RATE_LIMITED
    assert error.message == "slow down"
    assert 0 < error.reset_in_seconds <= 60


def test_rejection_does_not_consume_budget(clock) -> None:
    limiter = RateLimiter(1, 10, clock=clock)
    limiter.check_limit("k")
    for _ in range(5):
        assert limiter.check_limit("k").is_err()
    clock.advance(10)
    assert limiter.check_limit("k").is_ok()


def test_window_slides(clock) -> None:
    limiter = RateLimiter(2, 60, clock=clock)
    limiter.check_limit("k")
    clock.advance(30)
    limiter.check_limit("k")
    assert limiter.check_limit("k").is_err()

    clock.advance(30)  # first request leaves the window
    assert limiter.check_limit("k").is_ok()
    assert limiter.check_limit("k").is_err()


def test_reset_hint_counts_from_oldest_request(clock) -> None:
    limiter = RateLimiter(1, 60, clock=clock)
    limiter.check_limit("k")
    clock.advance(45.5)
    assert limiter.check_limit("k").unwrap_err().reset_in_seconds == 15


def test_remaining_restores_after_window(clock) -> None:
    limiter = RateLimiter(3, 60, clock=clock)
    for _ in range(3):
        limiter.check_limit("k")
    assert limiter.remaining_requests("k") == 0
    assert limiter.time_to_reset("k") == pytest.approx(60)

    clock.advance(60)
    assert limiter.remaining_requests("k") == 3
    assert limiter.time_to_reset("k") == 0.0


def test_queries_do_not_record(clock) -> None:
    limiter = RateLimiter(2, 60, clock=clock)
    for _ in range(10):
        limiter.remaining_requests("k")
        limiter.time_to_reset("k")
    assert limiter.remaining_requests("k") == 2
    assert limiter.tracked_keys == 0


def test_keys_are_independent(clock) -> None:
    limiter = RateLimiter(1, 60, clock=clock)
    assert limiter.check_limit("a").is_ok()
    assert limiter.check_limit("b").is_ok()
    assert limiter.check_limit("a").is_err()


def test_cleanup_drops_expired_keys(clock) -> None:
    limiter = RateLimiter(5, 60, clock=clock)
    limiter.check_limit("old")
    clock.advance(61)
    limiter.check_limit("new")

    assert limiter.cleanup() == 1
    assert limiter.tracked_keys == 1
    assert limiter.remaining_requests("new") == 4


@pytest.mark.asyncio
async def test_with_rate_limit_skips_operation_when_rejected(clock) -> None:
    limiter = RateLimiter(1, 60, clock=clock)
    calls: list[int] = []

    async def op() -> int:
        calls.append(1)
        return 42

    assert (await limiter.with_rate_limit("k", op)).unwrap() == 42
    assert (await limiter.with_rate_limit("k", op)).is_err()
    assert calls == [1]


@pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_seconds": 0}])
def test_invalid_construction(kwargs) -> None:
    with pytest.raises(ValueError):
        RateLimiter(**kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# CategoryRouter
# ─────────────────────────────────────────────────────────────────────────────

def test_declared_category_wins(router) -> None:
    assert router.category_for("get_system_info", "network") == "network"


def test_prefix_rule_applies(router) -> None:
    assert router.category_for("ping_host") == "network"
    assert router.category_for("get_system_info") == "system"


def test_unmatched_name_routes_to_default(router) -> None:
    assert router.category_for("generate_uuid") == router.default == "system"


def test_unknown_declared_category_falls_back(router) -> None:
    assert router.category_for("x", "nonexistent") == "system"


def test_router_rejects_missing_default() -> None:
    with pytest.raises(ValueError, match="default category"):
        CategoryRouter({"network": RateLimiter()}, default="system")


def test_router_rejects_rule_to_unknown_category() -> None:
    with pytest.raises(ValueError, match="unknown category"):
        CategoryRouter({"system": RateLimiter()}, rules=[("ping_", "network")])


def test_router_from_settings() -> None:
    router = CategoryRouter.from_settings(RateLimitSettings())
    assert sorted(router.categories) == ["geo", "network", "system"]
    assert router.limiter("system").max_requests == 100
    assert router.limiter("network").max_requests == 50
    assert router.limiter("geo").max_requests == 45
    assert router.category_for("traceroute") == "network"
    assert router.category_for("geolocate") == "geo"


def test_router_cleanup_sums_limiters(router, clock) -> None:
    router.limiter("system").check_limit("system")
    router.limiter("network").check_limit("network")
    clock.advance(120)
    assert router.cleanup() == 2


def test_concurrent_callers_share_one_budget() -> None:
    limiter = RateLimiter(45, 60)
    barrier = threading.Barrier(8)
    admitted: list[int] = []

    def hammer() -> None:
        barrier.wait()
        ok = sum(limiter.check_limit("geo").is_ok() for _ in range(100))
        admitted.append(ok)

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(admitted) == 45
    assert limiter.remaining_requests("geo") == 0
