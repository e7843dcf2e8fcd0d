from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from realtime_service.application.dto.principal import Principal
from realtime_service.infrastructure.auth.claims import principal_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(
        self,
        jwks_url: str,
        *,
        issuer: str | None = None,
        audience: str | None = None,
    ) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)
        self._issuer = issuer
        self._audience = audience

    async def verify(self, token: str) -> Principal:
        # key fetch is blocking HTTP; keep it off the event loop
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            issuer=self._issuer,
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
        )
        logger.debug("JWKS token verified for %s", payload.get("userId") or payload.get("sub"))
        return principal_from_claims(payload)
