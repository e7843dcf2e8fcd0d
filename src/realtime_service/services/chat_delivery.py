from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime

from realtime_service.application.dto.principal import Principal
from realtime_service.application.exceptions import (
    ConflictError,
    ForbiddenError,
    RateLimitedError,
    ValidationError,
)
from realtime_service.application.policies.permissions import assert_message_access
from realtime_service.application.ports.chat import ChatStore
from realtime_service.application.ports.clock import Clock
from realtime_service.domain.entities.chat_message import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 100


class SendCooldown:
    """Minimum gap between two chat messages from the same sender."""

    def __init__(self, seconds: float, clock: Clock) -> None:
        self._seconds = seconds
        self._clock = clock
        self._last_sent: dict[str, datetime] = {}

    def check(self, user_id: str) -> None:
        last = self._last_sent.get(user_id)
        if self._seconds <= 0 or last is None:
            return
        remaining = self._seconds - (self._clock.now() - last).total_seconds()
        if remaining > 0:
            wait = math.ceil(remaining)
            raise RateLimitedError(
                f"Please wait {wait} seconds before sending another message", retry_after=wait,
            )

    def record(self, user_id: str) -> None:
        self._last_sent[user_id] = self._clock.now()


async def send_message(
    principal: Principal,
    body: str | None,
    store: ChatStore,
    clock: Clock,
    *,
    student_id: str | None = None,
    max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    cooldown: SendCooldown | None = None,
) -> ChatMessage:
    """Create one chat turn between a student and their counselor.

    Students always write to their assigned counselor and are refused while
    none is assigned. Counselors must name a student assigned to them.
    Internal principals may write to any student; the message stays in the
    student's conversation with the assigned counselor.
    """
    text = (body or "").strip()
    if not text:
        raise ValidationError("Message is required")
    if cooldown is not None and not principal.is_internal:
        cooldown.check(principal.user_id)
    if len(text) > max_length:
        raise ValidationError(
            f"Message is too long. Please keep messages under {max_length} characters."
        )

    if principal.is_student:
        student = principal.user_id
        counselor = await store.get_assigned_counselor(student)
        if not counselor:
            raise ConflictError("No counselor assigned. Please contact admin to assign a counselor")
    else:
        if not student_id:
            raise ValidationError("studentId is required")
        student = student_id
        counselor = await store.get_assigned_counselor(student_id)
        if not principal.is_internal and counselor != principal.user_id:
            raise ForbiddenError("Student is not assigned to this counselor")

    msg = ChatMessage(
        id=str(uuid.uuid4()),
        student_id=student,
        counselor_id=counselor,
        sender_id=principal.user_id,
        body=text,
        created_at=clock.now(),
    )
    created = await store.create(msg)
    if cooldown is not None:
        cooldown.record(principal.user_id)
    return created


async def mark_read(
    principal: Principal,
    message_id: str,
    store: ChatStore,
    clock: Clock,
) -> ChatMessage:
    message = await store.get_by_id(message_id)
    message = assert_message_access(principal, message)
    if message.is_read:
        return message
    updated = await store.mark_read(message_id, clock.now())
    return updated or message


async def mark_many_read(
    principal: Principal,
    message_ids: list[str],
    store: ChatStore,
    clock: Clock,
) -> list[ChatMessage]:
    """Mark each known message read; unknown ids are skipped."""
    marked: list[ChatMessage] = []
    for message_id in message_ids:
        if await store.get_by_id(message_id) is None:
            logger.debug("Skipping unknown message %s", message_id)
            continue
        marked.append(await mark_read(principal, message_id, store, clock))
    return marked
