"""Chat messages and counselor assignments kept as JSON documents in Redis."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

import redis.asyncio as aioredis

from realtime_service.application.ports.clock import iso_timestamp
from realtime_service.domain.entities.chat_message import ChatMessage

logger = logging.getLogger(__name__)

MESSAGE_KEY = "chat:message:{id}"
ASSIGNMENT_KEY = "chat:assignment:{student_id}"


def _to_doc(message: ChatMessage) -> str:
    return json.dumps(
        {
            "id": message.id,
            "studentId": message.student_id,
            "counselorId": message.counselor_id,
            "senderId": message.sender_id,
            "message": message.body,
            "createdAt": iso_timestamp(message.created_at),
            "isRead": message.is_read,
            "readAt": iso_timestamp(message.read_at) if message.read_at else None,
        }
    )


def _from_doc(raw: str | bytes) -> ChatMessage:
    doc: dict[str, Any] = json.loads(raw)
    return ChatMessage(
        id=doc["id"],
        student_id=doc["studentId"],
        counselor_id=doc.get("counselorId"),
        sender_id=doc["senderId"],
        body=doc["message"],
        created_at=datetime.fromisoformat(doc["createdAt"]),
        is_read=doc.get("isRead", False),
        read_at=datetime.fromisoformat(doc["readAt"]) if doc.get("readAt") else None,
    )


class RedisChatStore:
    """Implements application.ports.chat.ChatStore."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get_assigned_counselor(self, student_id: str) -> str | None:
        counselor = await self._redis.get(ASSIGNMENT_KEY.format(student_id=student_id))
        if isinstance(counselor, bytes):
            counselor = counselor.decode()
        return counselor or None

    async def assign_counselor(self, student_id: str, counselor_id: str) -> None:
        await self._redis.set(ASSIGNMENT_KEY.format(student_id=student_id), counselor_id)

    async def create(self, message: ChatMessage) -> ChatMessage:
        await self._redis.set(MESSAGE_KEY.format(id=message.id), _to_doc(message))
        return message

    async def get_by_id(self, message_id: str) -> ChatMessage | None:
        raw = await self._redis.get(MESSAGE_KEY.format(id=message_id))
        return _from_doc(raw) if raw else None

    async def mark_read(self, message_id: str, read_at: datetime) -> ChatMessage | None:
        message = await self.get_by_id(message_id)
        if message is None:
            return None
        if message.is_read:
            return message
        updated = replace(message, is_read=True, read_at=read_at)
        await self._redis.set(MESSAGE_KEY.format(id=message_id), _to_doc(updated))
        logger.debug("Chat message %s marked read", message_id)
        return updated
