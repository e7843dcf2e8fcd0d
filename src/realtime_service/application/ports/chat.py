from __future__ import annotations

from datetime import datetime
from typing import Protocol

from realtime_service.domain.entities.chat_message import ChatMessage


class ChatStore(Protocol):
    """External owner of chat messages and counselor assignments."""

    async def get_assigned_counselor(self, student_id: str) -> str | None: ...

    async def create(self, message: ChatMessage) -> ChatMessage: ...

    async def get_by_id(self, message_id: str) -> ChatMessage | None: ...

    async def mark_read(self, message_id: str, read_at: datetime) -> ChatMessage | None: ...
