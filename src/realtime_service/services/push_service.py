"""Domain events → envelopes fanned out to the affected users' connections."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from realtime_service.domain.entities.chat_message import ChatMessage
from realtime_service.domain.entities.notification import Notification
from realtime_service.domain.value_objects.enums import EnvelopeType
from realtime_service.infrastructure.ws import payloads
from realtime_service.infrastructure.ws.protocol import WsOutbound

if TYPE_CHECKING:
    from realtime_service.infrastructure.ws.router import MessageRouter

logger = logging.getLogger(__name__)


async def push_chat_message(router: MessageRouter, message: ChatMessage) -> int:
    """Student gets the student-formatted record, counselor the counselor one."""
    delivered = await router.send_to_user(
        message.student_id,
        WsOutbound(type=EnvelopeType.CHAT_MESSAGE, data=payloads.chat_message_for_student(message)),
    )
    if message.counselor_id:
        delivered += await router.send_to_user(
            message.counselor_id,
            WsOutbound(
                type=EnvelopeType.CHAT_MESSAGE,
                data=payloads.chat_message_for_counselor(message),
            ),
        )
    logger.info(
        "Broadcast chat message %s between student %s and counselor %s (%d deliveries)",
        message.id, message.student_id, message.counselor_id, delivered,
    )
    return delivered


async def push_message_read(
    router: MessageRouter,
    message: ChatMessage,
    reader_id: str,
    read_at: datetime,
) -> int:
    envelope = WsOutbound(
        type=EnvelopeType.MESSAGE_READ,
        data=payloads.read_confirmation(message.id, reader_id, read_at),
    )
    delivered = 0
    for user_id in message.participants:
        delivered += await router.send_to_user(user_id, envelope)
    return delivered


async def push_notification(router: MessageRouter, notification: Notification) -> int:
    return await router.send_to_user(
        notification.user_id,
        WsOutbound(type=EnvelopeType.NOTIFICATION, data=payloads.notification_payload(notification)),
    )


async def push_application_update(router: MessageRouter, user_id: str, update: dict[str, Any]) -> int:
    return await router.send_to_user(
        user_id,
        WsOutbound(type=EnvelopeType.APPLICATION_UPDATE, data=update),
    )


async def push_topic(router: MessageRouter, topic: str, event_type: str, data: Any) -> int:
    return await router.send_to_topic(topic, WsOutbound(type=event_type, data=data))


async def dispatch_bus_event(router: MessageRouter, event_type: str, data: dict[str, Any]) -> int:
    """Deliver one event received from the cross-process bus to local connections."""
    if event_type == EnvelopeType.NOTIFICATION:
        return await push_notification(router, payloads.notification_from_payload(data))

    if event_type == EnvelopeType.APPLICATION_UPDATE:
        user_id = data.get("userId")
        if not user_id:
            logger.warning("application_update event without userId dropped")
            return 0
        return await push_application_update(router, str(user_id), data.get("update") or {})

    if event_type == "topic":
        topic = data.get("topic")
        if not topic:
            logger.warning("topic event without topic dropped")
            return 0
        return await push_topic(router, topic, data.get("type", "topic_event"), data.get("data"))

    if event_type == "broadcast":
        return await router.broadcast(WsOutbound(type=data.get("type", "broadcast"), data=data.get("data")))

    logger.warning("Unknown bus event type %s dropped", event_type)
    return 0
