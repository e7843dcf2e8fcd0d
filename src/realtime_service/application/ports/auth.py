from __future__ import annotations

from typing import Protocol

from realtime_service.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Resolves a bearer token to a principal; raises on any invalid token."""

    async def verify(self, token: str) -> Principal: ...
