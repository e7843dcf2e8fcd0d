"""Server-side liveness: idle-connection reaping and periodic stats logging."""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Coroutine

from realtime_service.application.ports.clock import Clock, SystemClock
from realtime_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

GOING_AWAY = 1001

OnReapCallback = Callable[[str], Coroutine[Any, Any, None]]


class HeartbeatMonitor:
    """Background task that closes connections silent for longer than ``idle_timeout``."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        interval_seconds: float,
        idle_timeout_seconds: float,
        stats_interval_seconds: float = 30.0,
        clock: Clock | None = None,
        on_reap: OnReapCallback | None = None,
    ) -> None:
        self._registry = registry
        self._interval = interval_seconds
        self._idle_timeout = timedelta(seconds=idle_timeout_seconds)
        self._stats_interval = stats_interval_seconds
        self._clock = clock or SystemClock()
        self._on_reap = on_reap
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="ws-heartbeat-monitor")
        logger.info(
            "Heartbeat monitor started (interval=%.1fs, idle_timeout=%.1fs)",
            self._interval,
            self._idle_timeout.total_seconds(),
        )

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Heartbeat monitor stopped")

    async def reap_idle(self) -> list[str]:
        """Close and drop every connection idle past the timeout."""
        if self._idle_timeout <= timedelta(0):
            return []
        now = self._clock.now()
        reaped: list[str] = []
        for conn in self._registry.snapshot():
            if now - conn.last_seen_at <= self._idle_timeout:
                continue
            logger.info("Reaping idle connection %s (last seen %s)", conn.id, conn.last_seen_at)
            await self._registry.close(conn.id, GOING_AWAY, "Heartbeat timeout")
            if self._on_reap is not None:
                await self._on_reap(conn.id)
            else:
                self._registry.unregister(conn.id)
            reaped.append(conn.id)
        return reaped

    def log_stats(self) -> None:
        stats = self._registry.stats()
        logger.info(
            "WebSocket monitoring: %d active connections (%d authenticated)",
            stats["totalConnections"],
            stats["authenticatedConnections"],
        )

    async def _run(self) -> None:
        since_stats = 0.0
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.reap_idle()
                since_stats += self._interval
                if since_stats >= self._stats_interval:
                    self.log_stats()
                    since_stats = 0.0
            except Exception:
                logger.exception("Heartbeat monitor loop error")
