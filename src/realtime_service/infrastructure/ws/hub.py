"""Wires the registry, handshake, load monitor, heartbeat and router into one owned unit."""
from __future__ import annotations

from dataclasses import dataclass

from realtime_service.application.ports.auth import TokenVerifier
from realtime_service.application.ports.chat import ChatStore
from realtime_service.application.ports.clock import Clock, SystemClock
from realtime_service.config import Settings
from realtime_service.infrastructure.ws.handshake import AuthHandshake
from realtime_service.infrastructure.ws.heartbeat import HeartbeatMonitor
from realtime_service.infrastructure.ws.load_monitor import LoadMonitor, RateLimiter
from realtime_service.infrastructure.ws.registry import ConnectionRegistry
from realtime_service.infrastructure.ws.router import MessageRouter
from realtime_service.services.chat_delivery import SendCooldown


@dataclass
class RealtimeHub:
    registry: ConnectionRegistry
    router: MessageRouter
    load_monitor: LoadMonitor
    heartbeat: HeartbeatMonitor
    chat_store: ChatStore
    clock: Clock
    chat_cooldown: SendCooldown
    max_message_length: int

    async def start(self) -> None:
        await self.heartbeat.start()

    async def stop(self) -> None:
        await self.heartbeat.stop()
        for conn in self.registry.snapshot():
            await self.registry.close(conn.id, 1001, "Server shutting down")
            await self.router.close(conn.id)


def build_hub(
    settings: Settings,
    verifier: TokenVerifier,
    chat_store: ChatStore,
    clock: Clock | None = None,
) -> RealtimeHub:
    clock = clock or SystemClock()
    registry = ConnectionRegistry(clock)
    load_monitor = LoadMonitor(
        registry,
        limit=settings.WS_CONNECTION_LIMIT,
        warning_threshold=settings.WS_WARNING_THRESHOLD,
        rate_limiter=RateLimiter(
            settings.WS_RATE_LIMIT_MESSAGES,
            settings.WS_RATE_LIMIT_WINDOW_SECONDS,
            clock,
        ),
    )
    handshake = AuthHandshake(registry, verifier, max_failures=settings.WS_MAX_AUTH_FAILURES)
    chat_cooldown = SendCooldown(settings.CHAT_SEND_COOLDOWN_SECONDS, clock)
    router = MessageRouter(
        registry,
        handshake,
        load_monitor,
        chat_store,
        clock,
        max_message_length=settings.CHAT_MAX_MESSAGE_LENGTH,
        chat_cooldown=chat_cooldown,
    )
    heartbeat = HeartbeatMonitor(
        registry,
        interval_seconds=settings.WS_HEARTBEAT_SECONDS,
        idle_timeout_seconds=settings.WS_IDLE_TIMEOUT_SECONDS,
        stats_interval_seconds=settings.WS_STATS_LOG_SECONDS,
        clock=clock,
        on_reap=router.close,
    )
    return RealtimeHub(
        registry=registry,
        router=router,
        load_monitor=load_monitor,
        heartbeat=heartbeat,
        chat_store=chat_store,
        clock=clock,
        chat_cooldown=chat_cooldown,
        max_message_length=settings.CHAT_MAX_MESSAGE_LENGTH,
    )
