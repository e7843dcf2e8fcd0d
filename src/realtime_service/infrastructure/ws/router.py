"""Single dispatch point for inbound envelopes and outbound fan-out."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pydantic import ValidationError as PydanticValidationError

from realtime_service.application.dto.principal import Principal
from realtime_service.application.exceptions import AppError
from realtime_service.application.ports.chat import ChatStore
from realtime_service.application.ports.clock import Clock, SystemClock
from realtime_service.application.ports.transport import Transport
from realtime_service.domain.value_objects.enums import EnvelopeType
from realtime_service.infrastructure.ws import protocol
from realtime_service.infrastructure.ws.handshake import AuthHandshake
from realtime_service.infrastructure.ws.load_monitor import LoadMonitor
from realtime_service.infrastructure.ws.protocol import WsInbound, WsOutbound
from realtime_service.infrastructure.ws.registry import ConnectionRegistry
from realtime_service.services import chat_delivery, push_service

logger = logging.getLogger(__name__)

Handler = Callable[[str, WsInbound], Awaitable[None]]


class MessageRouter:
    def __init__(
        self,
        registry: ConnectionRegistry,
        handshake: AuthHandshake,
        load_monitor: LoadMonitor,
        chat_store: ChatStore,
        clock: Clock | None = None,
        *,
        max_message_length: int = chat_delivery.DEFAULT_MAX_MESSAGE_LENGTH,
        chat_cooldown: chat_delivery.SendCooldown | None = None,
    ) -> None:
        self._registry = registry
        self._handshake = handshake
        self._load = load_monitor
        self._chat_store = chat_store
        self._clock = clock or SystemClock()
        self._max_message_length = max_message_length
        self._chat_cooldown = chat_cooldown
        self._principals: dict[str, Principal] = {}
        self._handlers: dict[str, Handler] = {
            EnvelopeType.AUTHENTICATE.value: self._on_authenticate,
            EnvelopeType.PING.value: self._on_ping,
            EnvelopeType.SUBSCRIBE.value: self._on_subscribe,
            EnvelopeType.CHAT_MESSAGE.value: self._on_chat_message,
            EnvelopeType.MESSAGE_READ.value: self._on_message_read,
        }

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def open(self, transport: Transport) -> str:
        connection_id = await self._registry.register(transport)
        await self._load.evaluate()
        return connection_id

    async def close(self, connection_id: str) -> None:
        """Drop a connection; safe to call more than once."""
        self._principals.pop(connection_id, None)
        self._load.forget(connection_id)
        if self._registry.unregister(connection_id) is not None:
            await self._load.evaluate()

    async def dispatch(self, connection_id: str, raw: str | bytes) -> None:
        """Handle one inbound frame. Never raises; failures are logged per message."""
        if connection_id not in self._registry:
            return
        self._registry.touch(connection_id)
        await self._load.record_message(connection_id)

        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Invalid WebSocket message from %s", connection_id)
            await self._registry.send(
                connection_id, protocol.error("invalid_payload", "Invalid message format"),
            )
            return

        handler = self._handlers.get(msg.type)
        if handler is None:
            logger.info("Unknown message type %r from %s", msg.type, connection_id)
            await self._registry.send(
                connection_id, protocol.error("unknown_type", f"Unknown message type: {msg.type}"),
            )
            return

        try:
            await handler(connection_id, msg)
        except AppError as exc:
            await self._registry.send(connection_id, protocol.error(exc.code, exc.detail))
        except Exception:
            logger.exception("Error handling %s from %s", msg.type, connection_id)
            await self._registry.send(
                connection_id, protocol.error("internal_error", "Failed to process message"),
            )

    async def send_to_user(self, user_id: str, envelope: WsOutbound) -> int:
        """Deliver to every open connection bound to ``user_id``; returns the delivery count."""
        delivered = 0
        for connection_id in self._registry.find_by_user(user_id):
            if await self._registry.send(connection_id, envelope):
                delivered += 1
        return delivered

    async def send_to_topic(self, topic: str, envelope: WsOutbound) -> int:
        delivered = 0
        for connection_id in self._registry.find_by_topic(topic):
            if await self._registry.send(connection_id, envelope):
                delivered += 1
        return delivered

    async def broadcast(self, envelope: WsOutbound) -> int:
        delivered = 0
        for conn in self._registry.snapshot():
            if await self._registry.send(conn.id, envelope):
                delivered += 1
        return delivered

    async def _on_authenticate(self, connection_id: str, msg: WsInbound) -> None:
        principal = await self._handshake.authenticate(connection_id, msg.token)
        if principal is not None:
            self._principals[connection_id] = principal

    async def _on_ping(self, connection_id: str, msg: WsInbound) -> None:
        await self._registry.send(connection_id, protocol.pong(msg.timestamp))

    async def _on_subscribe(self, connection_id: str, msg: WsInbound) -> None:
        topic = msg.data.get("topic") or msg.topic
        if not topic:
            await self._registry.send(connection_id, protocol.error("invalid_data", "topic is required"))
            return
        self._registry.add_topic(connection_id, str(topic))
        await self._registry.send(connection_id, protocol.subscribed(str(topic)))

    async def _on_chat_message(self, connection_id: str, msg: WsInbound) -> None:
        principal = self._require_principal(connection_id)
        if principal is None:
            await self._send_auth_required(connection_id)
            return
        message = await chat_delivery.send_message(
            principal,
            msg.data.get("message"),
            self._chat_store,
            self._clock,
            student_id=msg.data.get("studentId"),
            max_length=self._max_message_length,
            cooldown=self._chat_cooldown,
        )
        await push_service.push_chat_message(self, message)

    async def _on_message_read(self, connection_id: str, msg: WsInbound) -> None:
        principal = self._require_principal(connection_id)
        if principal is None:
            await self._send_auth_required(connection_id)
            return
        message_id = msg.data.get("messageId")
        if not message_id:
            await self._registry.send(
                connection_id, protocol.error("invalid_data", "messageId is required"),
            )
            return
        message = await chat_delivery.mark_read(principal, str(message_id), self._chat_store, self._clock)
        await push_service.push_message_read(
            self, message, principal.user_id, message.read_at or self._clock.now(),
        )

    def _require_principal(self, connection_id: str) -> Principal | None:
        conn = self._registry.get(connection_id)
        if conn is None or not conn.is_authenticated:
            return None
        return self._principals.get(connection_id)

    async def _send_auth_required(self, connection_id: str) -> None:
        await self._registry.send(
            connection_id, protocol.error("unauthenticated", "Authentication required"),
        )
