"""REST collaborators consumed by the client's feature hooks."""
from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from realtime_service.domain.entities.notification import Notification
from realtime_service.infrastructure.ws.payloads import notification_from_payload

logger = logging.getLogger(__name__)


class NotificationApi:
    """Notification list / unread-count / mark-read endpoints of the main API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_provider: Callable[[], str | None],
    ) -> None:
        self._client = client
        self._token_provider = token_provider

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def list(self) -> list[Notification]:
        resp = await self._client.get("/api/notifications", headers=self._headers())
        resp.raise_for_status()
        body: Any = resp.json()
        items = body.get("data", body) if isinstance(body, dict) else body
        return [notification_from_payload(item) for item in items]

    async def unread_count(self) -> int:
        resp = await self._client.get("/api/notifications/unread-count", headers=self._headers())
        resp.raise_for_status()
        body = resp.json()
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        return int(body.get("count", 0))

    async def mark_read(self, notification_id: str) -> None:
        resp = await self._client.put(
            f"/api/notifications/{notification_id}/read", headers=self._headers(),
        )
        resp.raise_for_status()
        logger.debug("Notification %s marked read", notification_id)
