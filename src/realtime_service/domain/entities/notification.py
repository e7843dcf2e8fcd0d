from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    created_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    read_at: datetime | None = None
