from __future__ import annotations

import json

import pytest

from realtime_service.domain.value_objects.enums import AlertLevel
from realtime_service.infrastructure.ws.load_monitor import LoadMonitor, RateLimiter
from realtime_service.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import FakeClock, make_server


def _alerts(transport):
    return transport.of_type("system_alert")


@pytest.mark.asyncio
async def test_no_alert_below_warning_threshold():
    server = make_server(limit=10, warning_threshold=5)
    conns = [await server.connect() for _ in range(4)]

    assert server.load_monitor.level == AlertLevel.NORMAL
    assert all(_alerts(t) == [] for _, t in conns)


@pytest.mark.asyncio
async def test_warning_alert_sent_once_at_threshold():
    server = make_server(limit=10, warning_threshold=5)
    conns = [await server.connect() for _ in range(5)]

    _, first = conns[0]
    [alert] = _alerts(first)
    assert alert["data"] == {"level": "warning", "connections": 5, "limit": 10}
    assert alert["message"] == "High server load: 5 users connected"

    await server.connect()
    assert len(_alerts(first)) == 1


@pytest.mark.asyncio
async def test_critical_alert_at_limit_reaches_anonymous_connections():
    server = make_server(limit=3, warning_threshold=2)
    _, anon = await server.connect()
    await server.connect_as("user-1")
    await server.connect_as("user-2")

    levels = [a["data"]["level"] for a in _alerts(anon)]
    assert levels == ["warning", "critical"]
    assert _alerts(anon)[-1]["message"] == "Server at capacity: 3/3 users connected"
    assert server.load_monitor.level == AlertLevel.CRITICAL


@pytest.mark.asyncio
async def test_alert_re_arms_after_load_drops():
    server = make_server(limit=10, warning_threshold=2)
    _, watcher = await server.connect()
    second, _ = await server.connect()
    assert len(_alerts(watcher)) == 1

    await server.router.close(second)
    assert server.load_monitor.level == AlertLevel.NORMAL

    await server.connect()
    assert len(_alerts(watcher)) == 2


def test_warning_above_limit_is_rejected():
    with pytest.raises(ValueError):
        LoadMonitor(ConnectionRegistry(), limit=5, warning_threshold=6)


def test_level_for_boundaries():
    monitor = LoadMonitor(ConnectionRegistry(), limit=10, warning_threshold=8)

    assert monitor.level_for(7) == AlertLevel.NORMAL
    assert monitor.level_for(8) == AlertLevel.WARNING
    assert monitor.level_for(9) == AlertLevel.WARNING
    assert monitor.level_for(10) == AlertLevel.CRITICAL
    assert monitor.level_for(11) == AlertLevel.CRITICAL


def test_rate_limiter_signals_once_per_breach():
    clock = FakeClock()
    limiter = RateLimiter(3, 10, clock)

    results = [limiter.hit("c") for _ in range(6)]

    assert results == [False, False, False, True, False, False]


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(2, 10, clock)
    for _ in range(3):
        limiter.hit("c")

    clock.advance(11)

    assert limiter.hit("c") is False
    assert limiter.hit("c") is False
    assert limiter.hit("c") is True


def test_rate_limiter_disabled_with_zero_max():
    limiter = RateLimiter(0, 10, FakeClock())
    assert not any(limiter.hit("c") for _ in range(100))


@pytest.mark.asyncio
async def test_rate_limit_exceeded_is_advisory():
    server = make_server(rate_limit=2)
    cid, transport = await server.connect()

    for _ in range(4):
        await server.router.dispatch(cid, json.dumps({"type": "ping"}))

    assert len(transport.of_type("rate_limit_exceeded")) == 1
    assert len(transport.of_type("pong")) == 4
    assert transport.closed is None
