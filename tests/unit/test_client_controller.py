from __future__ import annotations

import asyncio

import pytest

from realtime_service.client.config import ClientSettings
from realtime_service.client.controller import RealtimeClient
from realtime_service.client.platform import HeadlessPlatform
from realtime_service.client.state import ConnectionState
from tests.conftest import FakeConnector, wait_until


def _settings(**overrides) -> ClientSettings:
    values = {
        "WS_URL": "ws://test/ws",
        "AUTH_DELAY_SECONDS": 0,
        "HEARTBEAT_SECONDS": 60,
        "RECONNECT_BASE_DELAY_SECONDS": 0.01,
        "RECONNECT_MAX_DELAY_SECONDS": 0.05,
        "NOT_READY_RETRY_SECONDS": 0.01,
    }
    values.update(overrides)
    return ClientSettings(**values)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def platform() -> HeadlessPlatform:
    return HeadlessPlatform()


def _client(connector, platform, **kwargs) -> RealtimeClient:
    settings = kwargs.pop("settings", None) or _settings()
    return RealtimeClient(
        settings,
        token_provider=lambda: "jwt-token",
        platform=platform,
        connect=connector,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_connects_and_authenticates(connector, platform):
    connected = []
    client = _client(connector, platform, user_id="user-1", on_connect=lambda: connected.append(True))

    await client.start()
    await wait_until(lambda: connector.sockets and connector.last.sent_of_type("authenticate"))

    assert connector.urls == ["ws://test/ws"]
    assert connector.last.sent_of_type("authenticate")[0]["token"] == "jwt-token"
    assert client.state == ConnectionState.AUTHENTICATING
    assert connected == [True]

    connector.last.feed({"type": "connected", "data": {"connectionId": "c-1"}})
    connector.last.feed({"type": "authenticated", "data": {"userId": "user-1"}})
    await wait_until(lambda: client.state == ConnectionState.AUTHENTICATED)

    assert client.connection_id == "c-1"
    assert client.is_connected
    await client.disconnect()


@pytest.mark.asyncio
async def test_anonymous_client_never_sends_authenticate(connector, platform):
    client = _client(connector, platform)

    await client.start()
    await wait_until(lambda: client.state == ConnectionState.OPEN)
    await asyncio.sleep(0.02)

    assert connector.last.sent_of_type("authenticate") == []
    await client.disconnect()


@pytest.mark.asyncio
async def test_auth_error_returns_to_open(connector, platform):
    client = _client(connector, platform, user_id="user-1")
    await client.start()
    await wait_until(lambda: client.state == ConnectionState.AUTHENTICATING)

    connector.last.feed({"type": "auth_error", "message": "Invalid authentication token"})
    await wait_until(lambda: client.state == ConnectionState.OPEN)

    await client.disconnect()


@pytest.mark.asyncio
async def test_reconnects_and_reauthenticates_after_drop(connector, platform):
    disconnects = []
    client = _client(connector, platform, user_id="user-1", on_disconnect=lambda: disconnects.append(1))
    await client.start()
    await wait_until(lambda: connector.sockets and connector.last.sent_of_type("authenticate"))

    connector.sockets[0].drop()
    await wait_until(lambda: len(connector.sockets) == 2 and connector.last.sent_of_type("authenticate"))

    assert disconnects == [1]
    assert client.state == ConnectionState.AUTHENTICATING
    await client.disconnect()


@pytest.mark.asyncio
async def test_connection_failures_back_off_then_succeed(platform):
    connector = FakeConnector(failures=2)
    errors = []
    disconnects = []
    client = _client(
        connector, platform, on_error=errors.append, on_disconnect=lambda: disconnects.append(1),
    )

    await client.start()
    await wait_until(lambda: client.state == ConnectionState.OPEN)

    assert len(connector.urls) == 3
    assert len(errors) == 2
    assert disconnects == []
    assert client.error is None
    await client.disconnect()


@pytest.mark.asyncio
async def test_disconnect_stops_reconnecting(connector, platform):
    client = _client(connector, platform)
    await client.start()
    await wait_until(lambda: client.state == ConnectionState.OPEN)

    await client.disconnect()
    await asyncio.sleep(0.05)

    assert client.state == ConnectionState.DISCONNECTED
    assert client.connection_id is None
    assert len(connector.urls) == 1
    assert connector.sockets[0].closed


@pytest.mark.asyncio
async def test_no_reconnect_when_disabled(connector, platform):
    client = _client(connector, platform, settings=_settings(AUTO_RECONNECT=False))
    await client.start()
    await wait_until(lambda: client.state == ConnectionState.OPEN)

    connector.last.drop()
    await wait_until(lambda: client.state == ConnectionState.DISCONNECTED)
    await asyncio.sleep(0.05)

    assert len(connector.urls) == 1


@pytest.mark.asyncio
async def test_waits_for_platform_before_connecting(connector):
    platform = HeadlessPlatform(ready=False)
    client = _client(connector, platform)

    await client.start()
    await asyncio.sleep(0.05)
    assert connector.urls == []

    platform.ready = True
    await wait_until(lambda: client.state == ConnectionState.OPEN)
    await client.disconnect()


@pytest.mark.asyncio
async def test_heartbeat_sends_ping(connector, platform):
    client = _client(connector, platform, settings=_settings(HEARTBEAT_SECONDS=0.01, MISSED_HEARTBEATS=1000))
    await client.start()

    await wait_until(lambda: connector.sockets and connector.last.sent_of_type("ping"))
    await client.disconnect()


@pytest.mark.asyncio
async def test_silent_server_is_closed_for_reconnect(connector, platform):
    client = _client(
        connector,
        platform,
        settings=_settings(HEARTBEAT_SECONDS=0.01, MISSED_HEARTBEATS=2, AUTO_RECONNECT=False),
    )
    await client.start()

    await wait_until(lambda: connector.sockets and connector.last.closed)
    await wait_until(lambda: client.state == ConnectionState.DISCONNECTED)


@pytest.mark.asyncio
async def test_system_alert_shows_toast_and_is_not_forwarded(connector, platform):
    received = []
    client = _client(connector, platform, on_message=received.append)
    await client.start()
    await wait_until(lambda: client.state == ConnectionState.OPEN)

    connector.last.feed({
        "type": "system_alert",
        "data": {"level": "warning", "connections": 800, "limit": 1000},
        "message": "High server load: 800 users connected",
    })
    connector.last.feed({"type": "notification", "data": {"id": "n-1"}})
    await wait_until(lambda: received)

    [toast] = platform.toasts
    assert toast.title == "High Server Load"
    assert toast.duration_ms == 8000
    assert client.server_load == {"connections": 800, "limit": 1000}
    assert [e.type for e in received] == ["notification"]
    await client.disconnect()


@pytest.mark.asyncio
async def test_critical_alert_toast(connector, platform):
    client = _client(connector, platform)

    await client.handle_raw(
        '{"type": "system_alert", "data": {"level": "critical", "connections": 1000, "limit": 1000}}'
    )

    [toast] = platform.toasts
    assert toast.title == "Server At Capacity"
    assert toast.duration_ms == 12000
    assert toast.description == "1000/1000 users - some features may be slower"


@pytest.mark.asyncio
async def test_malformed_frame_is_dropped(connector, platform):
    received = []
    client = _client(connector, platform, on_message=received.append)

    await client.handle_raw("not json")

    assert received == []


@pytest.mark.asyncio
async def test_async_callback_failure_does_not_break_client(connector, platform):
    async def boom(_envelope):
        raise RuntimeError("handler bug")

    client = _client(connector, platform, on_message=boom)

    await client.handle_raw('{"type": "notification", "data": {}}')


@pytest.mark.asyncio
async def test_send_while_disconnected_is_refused(connector, platform):
    client = _client(connector, platform)

    assert await client.ping() is False
    assert await client.subscribe("deadlines") is False


def test_reconnect_delay_is_capped():
    client = RealtimeClient(
        ClientSettings(RECONNECT_BASE_DELAY_SECONDS=1, RECONNECT_MAX_DELAY_SECONDS=30),
    )
    assert [client.reconnect_delay(n) for n in range(7)] == [1, 2, 4, 8, 16, 30, 30]
