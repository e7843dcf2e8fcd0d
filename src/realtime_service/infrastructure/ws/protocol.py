"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from realtime_service.application.ports.clock import SystemClock, iso_timestamp
from realtime_service.domain.value_objects.enums import AlertLevel, EnvelopeType

_clock = SystemClock()


def _now_iso() -> str:
    return iso_timestamp(_clock.now())


class WsInbound(BaseModel):
    """Client → Server."""

    model_config = ConfigDict(extra="ignore")

    type: str  # authenticate | ping | subscribe | chat_message | message_read
    data: dict[str, Any] = Field(default_factory=dict)
    token: str | None = None
    topic: str | None = None
    timestamp: str | None = None


class WsOutbound(BaseModel):
    """Server → Client."""

    model_config = ConfigDict(extra="ignore")

    type: str
    data: Any = None
    message: str | None = None
    timestamp: str = Field(default_factory=_now_iso)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def connected(connection_id: str) -> WsOutbound:
    return WsOutbound(type=EnvelopeType.CONNECTED, data={"connectionId": connection_id})


def authenticated(user_id: str) -> WsOutbound:
    return WsOutbound(type=EnvelopeType.AUTHENTICATED, data={"userId": user_id})


def auth_error(message: str) -> WsOutbound:
    return WsOutbound(type=EnvelopeType.AUTH_ERROR, message=message)


def pong(timestamp: str | None = None) -> WsOutbound:
    if timestamp is None:
        return WsOutbound(type=EnvelopeType.PONG)
    return WsOutbound(type=EnvelopeType.PONG, timestamp=timestamp)


def subscribed(topic: str) -> WsOutbound:
    return WsOutbound(type=EnvelopeType.SUBSCRIBED, data={"topic": topic})


def system_alert(level: AlertLevel, connections: int, limit: int, message: str) -> WsOutbound:
    return WsOutbound(
        type=EnvelopeType.SYSTEM_ALERT,
        data={"level": level.value, "connections": connections, "limit": limit},
        message=message,
    )


def rate_limit_exceeded() -> WsOutbound:
    return WsOutbound(
        type=EnvelopeType.RATE_LIMIT_EXCEEDED,
        message="Please slow down your requests",
    )


def error(code: str, message: str) -> WsOutbound:
    return WsOutbound(type=EnvelopeType.ERROR, data={"code": code}, message=message)
