from __future__ import annotations

from realtime_service.application.dto.principal import Principal
from realtime_service.application.exceptions import ForbiddenError, NotFoundError
from realtime_service.domain.entities.chat_message import ChatMessage


def assert_message_access(principal: Principal, message: ChatMessage | None) -> ChatMessage:
    """Raise if the message doesn't exist or principal is not one of its participants."""
    if message is None:
        raise NotFoundError("Message not found")

    if principal.is_internal:
        return message

    if principal.user_id not in (message.student_id, message.counselor_id):
        raise ForbiddenError("Not a participant of this conversation")

    return message


def assert_internal(principal: Principal) -> None:
    if not principal.is_internal:
        raise ForbiddenError("Internal access required")
