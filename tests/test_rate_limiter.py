import pytest

from testgen.core.rate_limiter import RateLimiter


def _limiter(**kwargs):
    return RateLimiter(max_requests=3, window_seconds=60, sweep_interval_seconds=None, **kwargs)


def test_requests_within_the_cap_are_allowed():
    limiter = _limiter()
    decisions = [limiter.hit("10.0.0.1", now=1000.0 + i) for i in range(3)]

    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions] == [2, 1, 0]
    assert decisions[0].reset_at == 1060.0


def test_request_over_the_cap_is_blocked_with_retry_after():
    limiter = _limiter()
    for _ in range(3):
        limiter.hit("10.0.0.1", now=1000.0)

    decision = limiter.hit("10.0.0.1", now=1010.5)

    assert not decision.allowed
    assert decision.remaining == 0
    assert decision.retry_after == 50


def test_clients_are_counted_separately():
    limiter = _limiter()
    for _ in range(4):
        limiter.hit("10.0.0.1", now=1000.0)

    assert limiter.hit("10.0.0.2", now=1000.0).allowed
    assert len(limiter) == 2


def test_window_resets_lazily_after_expiry():
    limiter = _limiter()
    for _ in range(4):
        limiter.hit("10.0.0.1", now=1000.0)

    # Exactly at reset time the old window still applies
    assert not limiter.hit("10.0.0.1", now=1060.0).allowed

    decision = limiter.hit("10.0.0.1", now=1060.1)
    assert decision.allowed
    assert decision.remaining == 2
    assert decision.reset_at == pytest.approx(1120.1)


def test_sweep_evicts_only_long_idle_windows():
    limiter = _limiter()
    limiter.hit("idle", now=1000.0)
    limiter.hit("recent", now=1100.0)

    # idle: reset 1060, evictable after 1120; recent: reset 1160
    assert limiter.sweep(now=1120.0) == 0
    assert limiter.sweep(now=1121.0) == 1
    assert len(limiter) == 1
    assert limiter.hit("recent", now=1121.0).remaining == 1


def test_clear_all():
    limiter = _limiter()
    limiter.hit("a", now=1.0)
    limiter.clear_all()
    assert len(limiter) == 0
