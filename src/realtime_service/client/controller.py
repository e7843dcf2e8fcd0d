"""Client-side connection controller: one logical socket, kept alive and re-authenticated."""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
from contextlib import suppress
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol

import websockets
from pydantic import ValidationError as PydanticValidationError
from websockets.exceptions import ConnectionClosed

from realtime_service.application.ports.clock import SystemClock, iso_timestamp
from realtime_service.client.config import ClientSettings
from realtime_service.client.platform import HeadlessPlatform, Platform, Toast
from realtime_service.client.state import ClientEvent, ConnectionState, can_send, transition
from realtime_service.domain.value_objects.enums import AlertLevel, EnvelopeType
from realtime_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ClientSocket(Protocol):
    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


ConnectFactory = Callable[[str], Awaitable[ClientSocket]]
Callback = Callable[..., Any]

_SYSTEM_KINDS = frozenset(
    kind.value
    for kind in (
        EnvelopeType.CONNECTED,
        EnvelopeType.AUTHENTICATED,
        EnvelopeType.AUTH_ERROR,
        EnvelopeType.PONG,
        EnvelopeType.SYSTEM_ALERT,
        EnvelopeType.RATE_LIMIT_EXCEEDED,
    )
)


class RealtimeClient:
    """Owns exactly one transport at a time.

    Lifecycle follows :mod:`realtime_service.client.state`. After an
    unplanned close the controller reconnects with capped exponential
    backoff; :meth:`disconnect` stops it for good. Every envelope that is
    not connection housekeeping is handed to ``on_message``.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        user_id: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
        platform: Platform | None = None,
        on_message: Callback | None = None,
        on_connect: Callback | None = None,
        on_disconnect: Callback | None = None,
        on_error: Callback | None = None,
        connect: ConnectFactory | None = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._user_id = user_id
        self._token_provider = token_provider or (lambda: None)
        self._platform = platform or HeadlessPlatform()
        self._on_message = on_message
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._on_error = on_error
        self._connect = connect or websockets.connect
        self._clock = SystemClock()

        self.state = ConnectionState.DISCONNECTED
        self.connection_id: str | None = None
        self.error: str | None = None
        self.server_load: dict[str, Any] | None = None

        self._ws: ClientSocket | None = None
        self._task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._auth_task: asyncio.Task[None] | None = None
        self._stopping = False
        self._attempts = 0
        self._last_received = 0.0

    @property
    def url(self) -> str:
        return self._settings.ws_url

    @property
    def is_connected(self) -> bool:
        return can_send(self.state)

    def reconnect_delay(self, attempts: int) -> float:
        base = self._settings.RECONNECT_BASE_DELAY_SECONDS
        return min(base * (2 ** attempts), self._settings.RECONNECT_MAX_DELAY_SECONDS)

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="realtime-client")

    async def disconnect(self) -> None:
        self._stopping = True
        task, self._task = self._task, None
        await self._stop_background()
        ws, self._ws = self._ws, None
        if ws is not None:
            with suppress(Exception):
                await ws.close()
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self.state = ConnectionState.DISCONNECTED
        self.connection_id = None

    async def send(self, kind: str, data: Any = None) -> bool:
        payload: dict[str, Any] = {"type": kind, "timestamp": iso_timestamp(self._clock.now())}
        if data is not None:
            payload["data"] = data
        return await self._send_raw(payload)

    async def ping(self) -> bool:
        return await self.send(EnvelopeType.PING)

    async def subscribe(self, topic: str) -> bool:
        return await self.send(EnvelopeType.SUBSCRIBE, {"topic": topic})

    async def authenticate(self) -> bool:
        """Send the current bearer token; the state moves to ``authenticating``."""
        if self.state == ConnectionState.AUTHENTICATED:
            self.state = transition(self.state, ClientEvent.AUTH_RESET)
        if self.state != ConnectionState.OPEN:
            return False
        token = self._token_provider()
        if not token:
            logger.error("No auth token found for WebSocket authentication")
            return False

        self.state = transition(self.state, ClientEvent.AUTH_SENT)
        if not await self._send_raw({"type": EnvelopeType.AUTHENTICATE.value, "token": token}):
            if self.state == ConnectionState.AUTHENTICATING:
                self.state = transition(self.state, ClientEvent.AUTH_FAILED)
            return False
        logger.info("Sent authentication token to WebSocket")
        return True

    async def handle_raw(self, raw: str | bytes) -> None:
        """Process one inbound frame."""
        self._last_received = asyncio.get_running_loop().time()
        try:
            envelope = WsOutbound.model_validate_json(raw)
        except PydanticValidationError:
            logger.error("Error parsing WebSocket message")
            return

        kind = envelope.type
        data = envelope.data if isinstance(envelope.data, dict) else {}
        if kind == EnvelopeType.CONNECTED:
            self.connection_id = data.get("connectionId")
        elif kind == EnvelopeType.AUTHENTICATED:
            logger.info("WebSocket authenticated for user: %s", data.get("userId"))
            if self.state == ConnectionState.AUTHENTICATING:
                self.state = transition(self.state, ClientEvent.AUTH_OK)
        elif kind == EnvelopeType.AUTH_ERROR:
            logger.warning("WebSocket authentication rejected: %s", envelope.message)
            if self.state == ConnectionState.AUTHENTICATING:
                self.state = transition(self.state, ClientEvent.AUTH_FAILED)
        elif kind == EnvelopeType.SYSTEM_ALERT:
            self._show_system_alert(envelope, data)
        elif kind == EnvelopeType.RATE_LIMIT_EXCEEDED:
            self._platform.show_toast(
                Toast(title="Rate Limit", description="Please slow down your requests", duration_ms=5000)
            )

        if kind not in _SYSTEM_KINDS:
            await self._fire(self._on_message, envelope)

    async def _run(self) -> None:
        while not self._platform.is_ready():
            logger.warning("WebSocket: platform not ready, deferring connection")
            await asyncio.sleep(self._settings.NOT_READY_RETRY_SECONDS)

        while not self._stopping:
            await self._connect_once()
            if self._stopping or not self._settings.AUTO_RECONNECT:
                break
            delay = self.reconnect_delay(self._attempts)
            self._attempts += 1
            logger.info("WebSocket reconnecting in %.1fs (attempt %d)", delay, self._attempts)
            await asyncio.sleep(delay)

    async def _connect_once(self) -> None:
        self.state = transition(self.state, ClientEvent.CONNECT)
        url = self.url
        try:
            ws = await self._connect(url)
        except Exception as exc:
            logger.error("Failed to create WebSocket connection to %s: %s", url, exc)
            await self._handle_error(exc)
            await self._handle_close(opened=False)
            return

        self._ws = ws
        await self._handle_open()
        try:
            async for raw in ws:
                await self.handle_raw(raw)
        except (ConnectionClosed, OSError) as exc:
            await self._handle_error(exc)
        await self._handle_close()

    async def _handle_open(self) -> None:
        self.state = transition(self.state, ClientEvent.OPENED)
        self.error = None
        self._attempts = 0
        self._last_received = asyncio.get_running_loop().time()
        logger.info("WebSocket connected")

        self._heartbeat_task = asyncio.create_task(self._heartbeat(), name="realtime-client-heartbeat")
        if self._user_id:
            self._auth_task = asyncio.create_task(self._authenticate_later(), name="realtime-client-auth")
        await self._fire(self._on_connect)

    async def _handle_close(self, *, opened: bool = True) -> None:
        await self._stop_background()
        self._ws = None
        self.state = transition(self.state, ClientEvent.CLOSED)
        self.connection_id = None
        if not opened:
            return
        logger.info("WebSocket disconnected")
        await self._fire(self._on_disconnect)

    async def _handle_error(self, exc: BaseException) -> None:
        logger.error("WebSocket error: %s", exc)
        self.error = "Connection error"
        await self._fire(self._on_error, exc)

    async def _authenticate_later(self) -> None:
        await asyncio.sleep(self._settings.AUTH_DELAY_SECONDS)
        await self.authenticate()

    async def _heartbeat(self) -> None:
        interval = self._settings.HEARTBEAT_SECONDS
        budget = interval * self._settings.MISSED_HEARTBEATS
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(interval)
            ws = self._ws
            if ws is None:
                return
            if loop.time() - self._last_received > budget:
                logger.warning("No message received for %.1fs, closing to reconnect", budget)
                with suppress(Exception):
                    await ws.close()
                return
            await self.ping()

    async def _stop_background(self) -> None:
        current = asyncio.current_task()
        for attr in ("_heartbeat_task", "_auth_task"):
            task = getattr(self, attr)
            setattr(self, attr, None)
            if task is None or task is current or task.done():
                continue
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _send_raw(self, payload: dict[str, Any]) -> bool:
        ws = self._ws
        if ws is None or not can_send(self.state):
            return False
        try:
            await ws.send(json.dumps(payload))
        except (ConnectionClosed, OSError):
            logger.debug("WebSocket send failed", exc_info=True)
            return False
        return True

    def _show_system_alert(self, envelope: WsOutbound, data: dict[str, Any]) -> None:
        connections = data.get("connections")
        limit = data.get("limit")
        self.server_load = {"connections": connections, "limit": limit}
        level = data.get("level")
        if level == AlertLevel.WARNING:
            self._platform.show_toast(
                Toast(
                    title="High Server Load",
                    description=envelope.message or f"{connections} users connected",
                    duration_ms=8000,
                )
            )
        elif level == AlertLevel.CRITICAL:
            self._platform.show_toast(
                Toast(
                    title="Server At Capacity",
                    description=envelope.message
                    or f"{connections}/{limit} users - some features may be slower",
                    duration_ms=12000,
                )
            )

    async def _fire(self, callback: Callback | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("WebSocket callback %r failed", callback)
