from __future__ import annotations

import pytest

from realtime_service.client.config import ClientSettings, build_ws_url
from realtime_service.client.state import (
    ClientEvent,
    ConnectionState,
    InvalidTransition,
    can_send,
    transition,
)


def test_happy_path():
    state = ConnectionState.DISCONNECTED
    for event in (ClientEvent.CONNECT, ClientEvent.OPENED, ClientEvent.AUTH_SENT, ClientEvent.AUTH_OK):
        state = transition(state, event)
    assert state == ConnectionState.AUTHENTICATED


@pytest.mark.parametrize("state", list(ConnectionState))
def test_closed_always_returns_to_disconnected(state):
    assert transition(state, ClientEvent.CLOSED) == ConnectionState.DISCONNECTED


def test_auth_failure_falls_back_to_open():
    assert transition(ConnectionState.AUTHENTICATING, ClientEvent.AUTH_FAILED) == ConnectionState.OPEN


def test_invalid_transition_raises():
    with pytest.raises(InvalidTransition):
        transition(ConnectionState.DISCONNECTED, ClientEvent.AUTH_OK)


def test_can_send_only_when_open():
    assert not can_send(ConnectionState.DISCONNECTED)
    assert not can_send(ConnectionState.CONNECTING)
    assert can_send(ConnectionState.OPEN)
    assert can_send(ConnectionState.AUTHENTICATED)


@pytest.mark.parametrize(
    ("override", "origin", "expected"),
    [
        (None, "http://localhost:5000", "ws://localhost:5000/ws"),
        (None, "https://app.edupath.io", "wss://app.edupath.io/ws"),
        ("wss://rt.edupath.io/socket", "https://app.edupath.io", "wss://rt.edupath.io/socket"),
        (None, "", "ws://localhost:5000/ws"),
    ],
)
def test_build_ws_url(override, origin, expected):
    assert build_ws_url(override, origin) == expected


def test_settings_derive_urls():
    settings = ClientSettings(ORIGIN="https://app.edupath.io", API_BASE_URL=None)

    assert settings.ws_url == "wss://app.edupath.io/ws"
    assert settings.api_base_url == "https://app.edupath.io"
