from __future__ import annotations

from pydantic import Field

from realtime_service.api.v1.schemas.common import CamelModel


class SendChatMessageRequest(CamelModel):
    message: str = Field(min_length=1)
    student_id: str | None = None


class BulkReadRequest(CamelModel):
    message_ids: list[str]


class BulkReadResponse(CamelModel):
    success: bool = True
    marked_count: int
