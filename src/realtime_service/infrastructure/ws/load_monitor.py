"""Connection-count alerts and per-connection rate limiting."""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta

from realtime_service.application.ports.clock import Clock, SystemClock
from realtime_service.domain.value_objects.enums import AlertLevel
from realtime_service.infrastructure.ws import protocol
from realtime_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window message counter per connection.

    ``hit`` returns True only for the first message of a breach; the signal
    re-arms once the window drains back under the limit.
    """

    def __init__(self, max_messages: int, window_seconds: float, clock: Clock | None = None) -> None:
        self._max = max_messages
        self._window = timedelta(seconds=window_seconds)
        self._clock = clock or SystemClock()
        self._hits: dict[str, deque[datetime]] = {}
        self._signalled: set[str] = set()

    def hit(self, key: str) -> bool:
        if self._max <= 0:
            return False
        now = self._clock.now()
        window = self._hits.setdefault(key, deque())
        while window and now - window[0] >= self._window:
            window.popleft()
        window.append(now)

        if len(window) <= self._max:
            self._signalled.discard(key)
            return False
        if key in self._signalled:
            return False
        self._signalled.add(key)
        return True

    def forget(self, key: str) -> None:
        self._hits.pop(key, None)
        self._signalled.discard(key)


class LoadMonitor:
    """Broadcasts a system alert each time the connection count climbs into a higher level."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        limit: int,
        warning_threshold: int,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        if warning_threshold > limit:
            raise ValueError("warning_threshold must not exceed limit")
        self._registry = registry
        self._limit = limit
        self._warning = warning_threshold
        self._rate_limiter = rate_limiter
        self._level = AlertLevel.NORMAL

    @property
    def level(self) -> AlertLevel:
        return self._level

    @property
    def limit(self) -> int:
        return self._limit

    def level_for(self, count: int) -> AlertLevel:
        if count >= self._limit:
            return AlertLevel.CRITICAL
        if count >= self._warning:
            return AlertLevel.WARNING
        return AlertLevel.NORMAL

    async def evaluate(self) -> AlertLevel | None:
        """Re-check the count; returns the level broadcast, if any."""
        count = len(self._registry)
        new_level = self.level_for(count)
        previous, self._level = self._level, new_level
        if new_level.rank <= previous.rank:
            if new_level != previous:
                logger.info("WS load back to %s (%d/%d)", new_level, count, self._limit)
            return None

        logger.warning("WS load %s: %d/%d connections", new_level, count, self._limit)
        await self._broadcast_alert(new_level, count)
        return new_level

    async def record_message(self, connection_id: str) -> bool:
        """Count one inbound message; signal the sender if it is over its rate."""
        if self._rate_limiter is None or not self._rate_limiter.hit(connection_id):
            return False
        logger.info("WS rate limit exceeded by %s", connection_id)
        await self._registry.send(connection_id, protocol.rate_limit_exceeded())
        return True

    def forget(self, connection_id: str) -> None:
        if self._rate_limiter is not None:
            self._rate_limiter.forget(connection_id)

    async def _broadcast_alert(self, level: AlertLevel, count: int) -> None:
        if level == AlertLevel.CRITICAL:
            message = f"Server at capacity: {count}/{self._limit} users connected"
        else:
            message = f"High server load: {count} users connected"
        envelope = protocol.system_alert(level, count, self._limit, message)
        for conn in self._registry.snapshot():
            await self._registry.send(conn.id, envelope)
