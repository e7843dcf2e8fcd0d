"""In-process registry of live WebSocket connections."""
from __future__ import annotations

import logging
import uuid
from typing import Any

from realtime_service.application.exceptions import ConflictError
from realtime_service.application.ports.clock import Clock, SystemClock, iso_timestamp
from realtime_service.application.ports.transport import Transport
from realtime_service.domain.entities.connection import Connection
from realtime_service.infrastructure.ws import protocol
from realtime_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks connections by id and by bound user.

    Single event loop only: every mutation happens between awaits, so no
    locking is needed. Cross-connection operations iterate snapshots.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._connections: dict[str, Connection] = {}
        self._by_user: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    @property
    def authenticated_count(self) -> int:
        return sum(1 for c in self._connections.values() if c.is_authenticated)

    async def register(self, transport: Transport) -> str:
        connection_id = uuid.uuid4().hex
        now = self._clock.now()
        self._connections[connection_id] = Connection(
            id=connection_id,
            transport=transport,
            created_at=now,
            last_seen_at=now,
        )
        logger.info("WS connected: %s (total=%d)", connection_id, len(self._connections))
        await self.send(connection_id, protocol.connected(connection_id))
        return connection_id

    async def bind(self, connection_id: str, user_id: str) -> bool:
        """Bind ``user_id`` to an open connection and acknowledge it.

        Returns False when the connection is already gone. Rebinding to the
        same user is allowed; rebinding to a different one is refused.
        """
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        if conn.user_id is not None and conn.user_id != user_id:
            raise ConflictError("Connection already bound to another user")

        conn.user_id = user_id
        self._by_user.setdefault(user_id, set()).add(connection_id)
        logger.info("WS authenticated: %s as user %s", connection_id, user_id)
        await self.send(connection_id, protocol.authenticated(user_id))
        return True

    def unregister(self, connection_id: str) -> Connection | None:
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return None
        if conn.user_id is not None:
            ids = self._by_user.get(conn.user_id)
            if ids:
                ids.discard(connection_id)
                if not ids:
                    del self._by_user[conn.user_id]
        logger.info("WS disconnected: %s (remaining=%d)", connection_id, len(self._connections))
        return conn

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def find_by_user(self, user_id: str) -> set[str]:
        return set(self._by_user.get(user_id, ()))

    def find_by_topic(self, topic: str) -> set[str]:
        return {c.id for c in self._connections.values() if topic in c.topics}

    def snapshot(self) -> list[Connection]:
        return list(self._connections.values())

    def touch(self, connection_id: str) -> None:
        conn = self._connections.get(connection_id)
        if conn is not None:
            conn.last_seen_at = self._clock.now()

    def add_topic(self, connection_id: str, topic: str) -> None:
        conn = self._connections.get(connection_id)
        if conn is not None:
            conn.topics.add(topic)

    def record_auth_failure(self, connection_id: str) -> int:
        conn = self._connections.get(connection_id)
        if conn is None:
            return 0
        conn.auth_failures += 1
        return conn.auth_failures

    async def send(self, connection_id: str, envelope: WsOutbound) -> bool:
        """Best-effort send; a closed or failing transport yields False."""
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        try:
            await conn.transport.send_text(envelope.to_json())
        except Exception:
            logger.debug("WS send failed for %s", connection_id, exc_info=True)
            return False
        return True

    async def close(self, connection_id: str, code: int = 1000, reason: str | None = None) -> None:
        conn = self._connections.get(connection_id)
        if conn is None:
            return
        try:
            await conn.transport.close(code=code, reason=reason)
        except Exception:
            logger.debug("WS close failed for %s", connection_id, exc_info=True)

    def stats(self) -> dict[str, Any]:
        return {
            "totalConnections": len(self._connections),
            "authenticatedConnections": self.authenticated_count,
            "timestamp": iso_timestamp(self._clock.now()),
        }
