from __future__ import annotations

import pytest

from auth import FixedWindowRateLimiter, RateLimitDecision
from config import ApiKeySettings
from utils.exceptions import RateLimited


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_limit_then_denies() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=3, window_s=60, clock=clock)

    decisions = [limiter.check("key-1") for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert {d.reset_at for d in decisions} == {1_060.0}


def test_window_resets_after_expiry() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=1, window_s=60, clock=clock)
    assert limiter.check("key-1").allowed
    assert not limiter.check("key-1").allowed

    clock.now = 1_060.0
    decision = limiter.check("key-1")
    assert decision.allowed
    assert decision.remaining == 0
    assert decision.reset_at == 1_120.0


def test_keys_are_independent() -> None:
    limiter = FixedWindowRateLimiter(limit=1, window_s=60, clock=FakeClock())
    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed


def test_hit_raises_with_reset_time() -> None:
    limiter = FixedWindowRateLimiter(limit=1, window_s=30, clock=FakeClock())
    limiter.hit("key-1")
    with pytest.raises(RateLimited) as exc_info:
        limiter.hit("key-1")
    assert exc_info.value.limit == 1
    assert exc_info.value.remaining == 0
    assert exc_info.value.reset_at.timestamp() == 1_030.0


def test_expired_windows_are_swept() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=5, window_s=10, clock=clock, sweep_every=2)
    limiter.check("a")
    limiter.check("b")
    assert limiter.tracked_keys() == 2

    clock.now += 11
    limiter.check("c")
    limiter.check("c")
    assert limiter.tracked_keys() == 1


def test_decision_headers() -> None:
    allowed = RateLimitDecision(True, 10, 7, 1_060.2)
    assert allowed.headers() == {
        "X-RateLimit-Limit": "10",
        "X-RateLimit-Remaining": "7",
        "X-RateLimit-Reset": "1061",
    }
    denied = RateLimitDecision(False, 10, 0, 1_060.0)
    assert denied.headers(now=1_015.5)["Retry-After"] == "45"


def test_default_quota_denies_eleventh_request_in_window() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(
        clock=clock,
        settings=ApiKeySettings(rate_limit=10, rate_window_s=60),
    )
    window_start = clock.now
    for _ in range(10):
        limiter.hit("key-1")
        clock.now += 5

    with pytest.raises(RateLimited) as exc_info:
        limiter.hit("key-1")
    assert exc_info.value.limit == 10
    assert exc_info.value.reset_at.timestamp() == window_start + 60
