from __future__ import annotations

import logging
from typing import Any

from realtime_service.domain.value_objects.enums import EnvelopeType
from realtime_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ChatTranscript:
    """Ordered chat history for one conversation, updated from pushes."""

    def __init__(self, messages: list[dict[str, Any]] | None = None) -> None:
        self.messages: list[dict[str, Any]] = list(messages or [])

    def handle_envelope(self, envelope: WsOutbound) -> None:
        data = envelope.data if isinstance(envelope.data, dict) else {}
        if envelope.type == EnvelopeType.CHAT_MESSAGE:
            if any(m.get("id") == data.get("id") for m in self.messages):
                logger.debug("Duplicate chat message %s ignored", data.get("id"))
                return
            self.messages.append(data)
        elif envelope.type == EnvelopeType.MESSAGE_READ:
            message_id = data.get("messageId")
            for m in self.messages:
                if m.get("id") == message_id:
                    m["isRead"] = True

    @property
    def unread(self) -> list[dict[str, Any]]:
        return [m for m in self.messages if not m.get("isRead")]
