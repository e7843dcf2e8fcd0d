"""Local notification cache fed by pushes and kept in sync with the REST API."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import timedelta
from typing import Protocol

import httpx

from realtime_service.application.ports.clock import Clock, SystemClock
from realtime_service.client.platform import Platform, Toast
from realtime_service.domain.entities.notification import Notification
from realtime_service.domain.value_objects.enums import EnvelopeType
from realtime_service.infrastructure.ws.payloads import notification_from_payload
from realtime_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=24)

_TYPE_TOASTS: dict[str, tuple[str | None, int, str]] = {
    "application_update": ("Application Update", 7000, "default"),
    "deadline": ("Deadline Reminder", 10000, "destructive"),
    "message": ("New Message", 5000, "default"),
    "system": ("System Notification", 6000, "default"),
}


class NotificationSource(Protocol):
    async def list(self) -> list[Notification]: ...

    async def unread_count(self) -> int: ...

    async def mark_read(self, notification_id: str) -> None: ...


class NotificationFeed:
    def __init__(
        self,
        api: NotificationSource,
        platform: Platform,
        clock: Clock | None = None,
    ) -> None:
        self._api = api
        self._platform = platform
        self._clock = clock or SystemClock()
        self.notifications: list[Notification] = []
        self._server_unread: int | None = None

    @property
    def unread_count(self) -> int:
        if self._server_unread is not None:
            return self._server_unread
        return sum(1 for n in self.notifications if not n.is_read)

    @property
    def has_unread(self) -> bool:
        return self.unread_count > 0

    async def refresh(self) -> None:
        """Replace the cache with the server's list and unread count."""
        self.notifications = await self._api.list()
        self._server_unread = await self._api.unread_count()

    def handle_envelope(self, envelope: WsOutbound) -> None:
        if envelope.type == EnvelopeType.NOTIFICATION:
            notification = notification_from_payload(envelope.data)
            self.notifications.insert(0, notification)
            if not notification.is_read and self._server_unread is not None:
                self._server_unread += 1
            self._toast_for(notification)
        elif envelope.type == EnvelopeType.APPLICATION_UPDATE:
            self._platform.show_toast(
                Toast(
                    title="Application Status Changed",
                    description="Your application has been updated",
                    duration_ms=7000,
                )
            )

    async def mark_as_read(self, notification_id: str) -> bool:
        """Optimistically mark read; roll back locally if the server rejects it."""
        previous = self._find(notification_id)
        self._set_read(notification_id, True)
        try:
            await self._api.mark_read(notification_id)
        except httpx.HTTPError:
            logger.warning("Failed to mark notification %s as read", notification_id, exc_info=True)
            self._set_read(notification_id, False)
            self._platform.show_toast(
                Toast(
                    title="Error",
                    description="Failed to mark notification as read",
                    variant="destructive",
                )
            )
            return False
        if previous is not None and not previous.is_read and self._server_unread:
            self._server_unread -= 1
        return True

    async def mark_all_as_read(self) -> bool:
        unread_ids = [n.id for n in self.notifications if not n.is_read]
        for notification_id in unread_ids:
            self._set_read(notification_id, True)
        results = await asyncio.gather(
            *(self._api.mark_read(nid) for nid in unread_ids),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if not errors:
            if self._server_unread is not None:
                self._server_unread = max(0, self._server_unread - len(unread_ids))
            return True

        for notification_id in unread_ids:
            self._set_read(notification_id, False)
        for exc in errors:
            if not isinstance(exc, httpx.HTTPError):
                raise exc
        self._platform.show_toast(
            Toast(
                title="Error",
                description="Failed to mark all notifications as read",
                variant="destructive",
            )
        )
        return False

    def delete(self, notification_id: str) -> None:
        """Local only; the server keeps the record."""
        self.notifications = [n for n in self.notifications if n.id != notification_id]

    def by_type(self, notification_type: str) -> list[Notification]:
        return [n for n in self.notifications if n.type == notification_type]

    def recent(self) -> list[Notification]:
        cutoff = self._clock.now() - RECENT_WINDOW
        return [n for n in self.notifications if n.created_at > cutoff]

    def _find(self, notification_id: str) -> Notification | None:
        return next((n for n in self.notifications if n.id == notification_id), None)

    def _set_read(self, notification_id: str, is_read: bool) -> None:
        read_at = self._clock.now() if is_read else None
        self.notifications = [
            replace(n, is_read=is_read, read_at=read_at) if n.id == notification_id else n
            for n in self.notifications
        ]

    def _toast_for(self, notification: Notification) -> None:
        title, duration, variant = _TYPE_TOASTS.get(notification.type, (None, 5000, "default"))
        self._platform.show_toast(
            Toast(
                title=title or notification.title,
                description=notification.message,
                duration_ms=duration,
                variant=variant,
            )
        )
