"""
tests/test_throttle.py — Sliding-Window Rate Limiter Tests
===========================================================
"""

from __future__ import annotations

import pytest

from todbot.services.throttle import RateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_requests=3, window=60, clock=clock)


def test_allows_up_to_limit(limiter):
    assert [limiter.is_allowed(1) for _ in range(4)] == [True, True, True, False]


def test_users_are_independent(limiter):
    for _ in range(3):
        limiter.is_allowed(1)
    assert limiter.is_allowed(2) is True


def test_window_slides(limiter, clock):
    limiter.is_allowed(1)
    clock.now = 30
    limiter.is_allowed(1)
    limiter.is_allowed(1)
    assert limiter.is_allowed(1) is False

    clock.now = 61  # first call left the window
    assert limiter.is_allowed(1) is True
    assert limiter.is_allowed(1) is False


def test_denied_calls_not_recorded(limiter, clock):
    for _ in range(3):
        limiter.is_allowed(1)
    for _ in range(10):
        limiter.is_allowed(1)
    clock.now = 61
    assert limiter.is_allowed(1) is True


def test_retry_after(limiter, clock):
    assert limiter.retry_after(1) == 0.0
    for _ in range(3):
        limiter.is_allowed(1)
    clock.now = 20
    assert limiter.retry_after(1) == pytest.approx(40)


def test_reset(limiter):
    for _ in range(3):
        limiter.is_allowed(1)
    limiter.reset(1)
    assert limiter.is_allowed(1) is True


def test_cleanup_forgets_idle_users(limiter, clock):
    limiter.is_allowed(1)
    clock.now = 50
    limiter.is_allowed(2)
    clock.now = 70
    assert limiter.cleanup() == 1
    assert limiter.cleanup() == 0
