from __future__ import annotations

from fastapi import APIRouter

from realtime_service.api.deps import CurrentPrincipal, HubDep
from realtime_service.api.v1.schemas.chat import (
    BulkReadRequest,
    BulkReadResponse,
    SendChatMessageRequest,
)
from realtime_service.infrastructure.ws import payloads
from realtime_service.services import chat_delivery, push_service

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


@router.post("/messages", status_code=201)
async def send_message(
    body: SendChatMessageRequest,
    principal: CurrentPrincipal,
    hub: HubDep,
) -> dict:
    message = await chat_delivery.send_message(
        principal,
        body.message,
        hub.chat_store,
        hub.clock,
        student_id=body.student_id,
        max_length=hub.max_message_length,
        cooldown=hub.chat_cooldown,
    )
    await push_service.push_chat_message(hub.router, message)
    if principal.is_student:
        return payloads.chat_message_for_student(message)
    return payloads.chat_message_for_counselor(message)


@router.put("/messages/bulk-read", response_model=BulkReadResponse, response_model_by_alias=True)
async def mark_messages_read(
    body: BulkReadRequest,
    principal: CurrentPrincipal,
    hub: HubDep,
) -> BulkReadResponse:
    marked = await chat_delivery.mark_many_read(
        principal, body.message_ids, hub.chat_store, hub.clock,
    )
    for message in marked:
        await push_service.push_message_read(
            hub.router, message, principal.user_id, message.read_at or hub.clock.now(),
        )
    return BulkReadResponse(marked_count=len(marked))


@router.put("/messages/{message_id}/read")
async def mark_message_read(
    message_id: str,
    principal: CurrentPrincipal,
    hub: HubDep,
) -> dict:
    message = await chat_delivery.mark_read(principal, message_id, hub.chat_store, hub.clock)
    read_at = message.read_at or hub.clock.now()
    await push_service.push_message_read(hub.router, message, principal.user_id, read_at)
    return payloads.read_confirmation(message.id, principal.user_id, read_at)
