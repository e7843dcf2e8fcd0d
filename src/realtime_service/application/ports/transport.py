from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """Server side of one live bidirectional connection (e.g. a Starlette WebSocket)."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...
