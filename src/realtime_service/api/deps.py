"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from realtime_service.application.dto.principal import Principal
from realtime_service.application.policies.permissions import assert_internal
from realtime_service.application.ports.auth import TokenVerifier
from realtime_service.config import settings
from realtime_service.infrastructure.auth.hs256_verifier import HS256Verifier
from realtime_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from realtime_service.infrastructure.ws.hub import RealtimeHub

_bearer_scheme = HTTPBearer()


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(
            settings.JWKS_URL,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
        )
    return HS256Verifier(
        settings.JWT_SECRET,
        settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
    )


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


def get_hub(request: Request) -> RealtimeHub:
    return request.app.state.hub


HubDep = Annotated[RealtimeHub, Depends(get_hub)]


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_internal_principal(principal: CurrentPrincipal) -> Principal:
    assert_internal(principal)
    return principal


InternalPrincipal = Annotated[Principal, Depends(get_internal_principal)]
