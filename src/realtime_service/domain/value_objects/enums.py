from __future__ import annotations

from enum import StrEnum


class EnvelopeType(StrEnum):
    CONNECTED = "connected"
    AUTHENTICATE = "authenticate"
    AUTHENTICATED = "authenticated"
    AUTH_ERROR = "auth_error"
    PING = "ping"
    PONG = "pong"
    SUBSCRIBE = "subscribe"
    SUBSCRIBED = "subscribed"
    CHAT_MESSAGE = "chat_message"
    MESSAGE_READ = "message_read"
    NOTIFICATION = "notification"
    APPLICATION_UPDATE = "application_update"
    SYSTEM_ALERT = "system_alert"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    ERROR = "error"


class AlertLevel(StrEnum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _ALERT_RANK[self]


_ALERT_RANK = {
    AlertLevel.NORMAL: 0,
    AlertLevel.WARNING: 1,
    AlertLevel.CRITICAL: 2,
}


class UserType(StrEnum):
    CUSTOMER = "customer"
    TEAM_MEMBER = "team_member"
    COMPANY_PROFILE = "company_profile"
    ADMIN = "admin"
    SYSTEM = "system"


class SenderRole(StrEnum):
    STUDENT = "student"
    COUNSELOR = "counselor"
