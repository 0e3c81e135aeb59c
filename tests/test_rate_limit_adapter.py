"""Unit tests for in-memory rate limiter adapter."""

from unittest.mock import Mock

import pytest

from upfolio.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemoryRateLimitStore,
)


def test_counts_down_remaining_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=5, window_seconds=900, clock=clock)

    remaining = [limiter.check("ip:1.2.3.4").remaining for _ in range(5)]
    assert remaining == [4, 3, 2, 1, 0]

    blocked = limiter.check("ip:1.2.3.4")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == 1900
    assert blocked.retry_after_seconds == 900


def test_window_is_anchored_at_first_request() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    first = limiter.check("k")
    clock.return_value = 1030.0
    second = limiter.check("k")

    assert first.reset_at == 1060
    assert second.reset_at == 1060


def test_resets_after_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.check("k").allowed is True
    assert limiter.check("k").allowed is False

    clock.return_value = 1010.0
    result = limiter.check("k")
    assert result.allowed is True
    assert result.remaining == 0
    assert result.reset_at == 1020


def test_blocked_requests_do_not_extend_the_window() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryRateLimitStore()
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=30, store=store, clock=clock)

    limiter.check("k")
    for offset in (1, 5, 29):
        clock.return_value = 1000.0 + offset
        assert limiter.check("k").allowed is False

    entry = store.get("k")
    assert entry is not None
    assert entry.count == 1
    assert entry.reset_at == 1030.0


def test_retry_after_is_at_least_one_second() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    limiter.check("k")
    clock.return_value = 1009.9
    assert limiter.check("k").retry_after_seconds == 1


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.check("k1").allowed is True
    assert limiter.check("k1").allowed is False

    assert limiter.check("k2").allowed is True


def test_namespaces_share_store_without_interfering() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryRateLimitStore()
    login = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, store=store, namespace="login", clock=clock)
    signup = InMemoryFixedWindowRateLimiter(
        limit=1, window_seconds=60, store=store, namespace="registration", clock=clock
    )

    assert login.check("ip:1.1.1.1").allowed is True
    assert login.check("ip:1.1.1.1").allowed is False
    assert signup.check("ip:1.1.1.1").allowed is True
    assert len(store) == 2


def test_reset_clears_identifier() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.check("k")
    limiter.reset("k")

    assert limiter.check("k").allowed is True


def test_sweep_removes_only_expired_entries() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryRateLimitStore()
    short = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=10, store=store, namespace="a", clock=clock)
    long = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=100, store=store, namespace="b", clock=clock)

    short.check("k")
    long.check("k")
    assert len(store) == 2

    clock.return_value = 1010.0
    assert short.sweep_expired() == 1
    assert len(store) == 1
    assert store.get("b:k") is not None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


def test_invalid_check_args() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.check("")
