"""Connection lifecycle of the client as an explicit state machine."""
from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class ClientEvent(StrEnum):
    CONNECT = "connect"
    OPENED = "opened"
    AUTH_SENT = "auth_sent"
    AUTH_OK = "auth_ok"
    AUTH_FAILED = "auth_failed"
    AUTH_RESET = "auth_reset"
    CLOSED = "closed"


class InvalidTransition(ValueError):
    def __init__(self, state: ConnectionState, event: ClientEvent) -> None:
        self.state = state
        self.event = event
        super().__init__(f"Invalid transition {state.value} --{event.value}-->")


_TRANSITIONS: dict[tuple[ConnectionState, ClientEvent], ConnectionState] = {
    (ConnectionState.DISCONNECTED, ClientEvent.CONNECT): ConnectionState.CONNECTING,
    (ConnectionState.CONNECTING, ClientEvent.OPENED): ConnectionState.OPEN,
    (ConnectionState.OPEN, ClientEvent.AUTH_SENT): ConnectionState.AUTHENTICATING,
    (ConnectionState.AUTHENTICATING, ClientEvent.AUTH_OK): ConnectionState.AUTHENTICATED,
    (ConnectionState.AUTHENTICATING, ClientEvent.AUTH_FAILED): ConnectionState.OPEN,
    (ConnectionState.AUTHENTICATED, ClientEvent.AUTH_RESET): ConnectionState.OPEN,
}


def transition(state: ConnectionState, event: ClientEvent) -> ConnectionState:
    """Pure transition function; CLOSED is accepted from every state."""
    if event == ClientEvent.CLOSED:
        return ConnectionState.DISCONNECTED
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None


def can_send(state: ConnectionState) -> bool:
    return state in (
        ConnectionState.OPEN,
        ConnectionState.AUTHENTICATING,
        ConnectionState.AUTHENTICATED,
    )
