from __future__ import annotations

import logging

from realtime_service.application.dto.principal import Principal
from realtime_service.application.exceptions import ConflictError
from realtime_service.application.ports.auth import TokenVerifier
from realtime_service.infrastructure.ws import protocol
from realtime_service.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


class AuthHandshake:
    """Upgrades an anonymous connection to an identified one from an in-band token."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        verifier: TokenVerifier,
        *,
        max_failures: int = 3,
    ) -> None:
        self._registry = registry
        self._verifier = verifier
        self._max_failures = max_failures

    async def authenticate(self, connection_id: str, token: str | None) -> Principal | None:
        if not token:
            await self._fail(connection_id, "Authentication token required")
            return None

        try:
            principal = await self._verifier.verify(token)
        except Exception:
            logger.warning("WS auth failed for %s", connection_id, exc_info=True)
            await self._fail(connection_id, "Invalid authentication token")
            return None

        try:
            bound = await self._registry.bind(connection_id, principal.user_id)
        except ConflictError as exc:
            logger.warning("WS rebind refused for %s: %s", connection_id, exc.detail)
            await self._fail(connection_id, exc.detail)
            return None

        return principal if bound else None

    async def _fail(self, connection_id: str, message: str) -> None:
        await self._registry.send(connection_id, protocol.auth_error(message))
        failures = self._registry.record_auth_failure(connection_id)
        if self._max_failures and failures >= self._max_failures:
            logger.warning(
                "Closing %s after %d failed authentication attempts", connection_id, failures,
            )
            await self._registry.close(connection_id, POLICY_VIOLATION, "Authentication failed")
