"""camelCase wire payloads for domain records pushed over the socket."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from realtime_service.application.ports.clock import iso_timestamp
from realtime_service.domain.entities.chat_message import ChatMessage
from realtime_service.domain.entities.notification import Notification


def _iso(moment: datetime | None) -> str | None:
    return iso_timestamp(moment) if moment is not None else None


def chat_message_for_student(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "message": message.body,
        "sender": message.sender_role.value,
        "timestamp": _iso(message.created_at),
        "isRead": message.is_read,
    }


def chat_message_for_counselor(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "studentId": message.student_id,
        "content": message.body,
        "timestamp": _iso(message.created_at),
        "isRead": message.is_read,
    }


def read_confirmation(message_id: str, user_id: str, read_at: datetime) -> dict[str, Any]:
    return {
        "messageId": message_id,
        "userId": user_id,
        "read": True,
        "timestamp": _iso(read_at),
    }


def notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "userId": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "isRead": notification.is_read,
        "readAt": _iso(notification.read_at),
        "createdAt": _iso(notification.created_at),
    }


def notification_from_payload(payload: dict[str, Any]) -> Notification:
    read_at = payload.get("readAt")
    return Notification(
        id=str(payload["id"]),
        user_id=str(payload.get("userId", "")),
        type=payload.get("type", "system"),
        title=payload.get("title", ""),
        message=payload.get("message", ""),
        created_at=datetime.fromisoformat(payload["createdAt"]),
        data=payload.get("data") or {},
        is_read=bool(payload.get("isRead", False)),
        read_at=datetime.fromisoformat(read_at) if read_at else None,
    )
