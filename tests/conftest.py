"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from realtime_service.application.dto.principal import Principal
from realtime_service.domain.entities.chat_message import ChatMessage
from realtime_service.domain.entities.notification import Notification
from realtime_service.domain.value_objects.enums import UserType
from realtime_service.infrastructure.ws.handshake import AuthHandshake
from realtime_service.infrastructure.ws.load_monitor import LoadMonitor, RateLimiter
from realtime_service.infrastructure.ws.registry import ConnectionRegistry
from realtime_service.infrastructure.ws.router import MessageRouter
from realtime_service.services.chat_delivery import SendCooldown

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class FakeTransport:
    """Captures every frame a connection would have received."""

    sent: list[str] = field(default_factory=list)
    closed: tuple[int, str | None] | None = None
    fail_sends: bool = False

    async def send_text(self, data: str) -> None:
        if self.fail_sends or self.closed is not None:
            raise RuntimeError("transport closed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)

    @property
    def envelopes(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [e for e in self.envelopes if e["type"] == kind]


class FakeVerifier:
    """Token ``<kind>-token-<userId>`` maps to a student, counselor or internal principal."""

    async def verify(self, token: str) -> Principal:
        if token.startswith("valid-token-"):
            return Principal(user_id=token.removeprefix("valid-token-"))
        if token.startswith("counselor-token-"):
            return Principal(
                user_id=token.removeprefix("counselor-token-"),
                user_type=UserType.TEAM_MEMBER,
            )
        if token.startswith("internal-token-"):
            return Principal(
                user_id=token.removeprefix("internal-token-"),
                user_type=UserType.SYSTEM,
            )
        raise ValueError("bad token")


@dataclass
class FakeChatStore:
    assignments: dict[str, str] = field(default_factory=dict)
    messages: dict[str, ChatMessage] = field(default_factory=dict)

    async def get_assigned_counselor(self, student_id: str) -> str | None:
        return self.assignments.get(student_id)

    async def create(self, message: ChatMessage) -> ChatMessage:
        self.messages[message.id] = message
        return message

    async def get_by_id(self, message_id: str) -> ChatMessage | None:
        return self.messages.get(message_id)

    async def mark_read(self, message_id: str, read_at: datetime) -> ChatMessage | None:
        message = self.messages.get(message_id)
        if message is None:
            return None
        if not message.is_read:
            message = replace(message, is_read=True, read_at=read_at)
            self.messages[message_id] = message
        return message


def make_chat_message(
    *,
    message_id: str = "m-1",
    student_id: str = "student-1",
    counselor_id: str | None = "counselor-1",
    sender_id: str | None = None,
    body: str = "hello",
) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        student_id=student_id,
        counselor_id=counselor_id,
        sender_id=sender_id or student_id,
        body=body,
        created_at=T0,
    )


def make_notification(
    *,
    notification_id: str = "n-1",
    user_id: str = "user-1",
    type: str = "system",
    is_read: bool = False,
    created_at: datetime = T0,
) -> Notification:
    return Notification(
        id=notification_id,
        user_id=user_id,
        type=type,
        title="Heads up",
        message="Something happened",
        created_at=created_at,
        is_read=is_read,
    )


@dataclass
class Server:
    """In-memory server side of the socket layer, wired like ``build_hub``."""

    clock: FakeClock
    registry: ConnectionRegistry
    load_monitor: LoadMonitor
    handshake: AuthHandshake
    router: MessageRouter
    chat_store: FakeChatStore

    async def connect(self) -> tuple[str, FakeTransport]:
        transport = FakeTransport()
        connection_id = await self.router.open(transport)
        return connection_id, transport

    async def connect_as(self, user_id: str, token_prefix: str = "valid-token-") -> tuple[str, FakeTransport]:
        connection_id, transport = await self.connect()
        await self.router.dispatch(
            connection_id, json.dumps({"type": "authenticate", "token": f"{token_prefix}{user_id}"}),
        )
        return connection_id, transport


def make_server(
    *,
    limit: int = 100,
    warning_threshold: int = 80,
    rate_limit: int = 0,
    max_auth_failures: int = 3,
    chat_cooldown_seconds: float = 0,
) -> Server:
    clock = FakeClock()
    registry = ConnectionRegistry(clock)
    load_monitor = LoadMonitor(
        registry,
        limit=limit,
        warning_threshold=warning_threshold,
        rate_limiter=RateLimiter(rate_limit, 10, clock),
    )
    handshake = AuthHandshake(registry, FakeVerifier(), max_failures=max_auth_failures)
    chat_store = FakeChatStore()
    router = MessageRouter(
        registry, handshake, load_monitor, chat_store, clock,
        chat_cooldown=SendCooldown(chat_cooldown_seconds, clock),
    )
    return Server(clock, registry, load_monitor, handshake, router, chat_store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def server() -> Server:
    return make_server()


@pytest.fixture
def student_principal() -> Principal:
    return Principal(user_id="student-1")


@pytest.fixture
def counselor_principal() -> Principal:
    return Principal(user_id="counselor-1", user_type=UserType.TEAM_MEMBER)


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(user_id="admin-1", user_type=UserType.ADMIN, roles=["admin"])


class FakeSocket:
    """Client-side socket double: the test feeds frames, the client reads them."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(None)

    def feed(self, envelope: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps(envelope))

    def drop(self) -> None:
        """Simulate the server going away."""
        self.closed = True
        self._inbox.put_nowait(None)

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def sent_of_type(self, kind: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["type"] == kind]


class FakeConnector:
    """Stands in for ``websockets.connect``; hands out a fresh FakeSocket per attempt."""

    def __init__(self, failures: int = 0) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []
        self._failures = failures

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self._failures > 0:
            self._failures -= 1
            raise ConnectionRefusedError("connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


async def wait_until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)
