from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import Field

from realtime_service.api.v1.schemas.common import CamelModel
from realtime_service.domain.entities.notification import Notification


class NotificationPushRequest(CamelModel):
    user_id: str
    type: str = "system"
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None
    created_at: datetime | None = None

    def to_entity(self) -> Notification:
        return Notification(
            id=self.id or str(uuid.uuid4()),
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            data=self.data,
            created_at=self.created_at or datetime.now(timezone.utc),
        )


class ApplicationUpdatePushRequest(CamelModel):
    user_id: str
    update: dict[str, Any] = Field(default_factory=dict)


class TopicPushRequest(CamelModel):
    type: str
    data: Any = None


class StatsResponse(CamelModel):
    total_connections: int
    authenticated_connections: int
    load_level: str
    limit: int
    timestamp: str
