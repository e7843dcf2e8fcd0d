from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from realtime_service.application.ports.transport import Transport


@dataclass(slots=True, eq=False)
class Connection:
    """One live transport session. Mutated only by the ConnectionRegistry."""

    id: str
    transport: Transport
    created_at: datetime
    last_seen_at: datetime
    user_id: str | None = None
    topics: set[str] = field(default_factory=set)
    auth_failures: int = 0

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
