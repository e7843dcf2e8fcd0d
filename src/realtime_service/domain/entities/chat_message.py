from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from realtime_service.domain.value_objects.enums import SenderRole


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    student_id: str
    counselor_id: str | None
    sender_id: str
    body: str
    created_at: datetime
    is_read: bool = False
    read_at: datetime | None = None

    @property
    def sender_role(self) -> SenderRole:
        return SenderRole.STUDENT if self.sender_id == self.student_id else SenderRole.COUNSELOR

    @property
    def participants(self) -> list[str]:
        return [uid for uid in (self.student_id, self.counselor_id) if uid]
