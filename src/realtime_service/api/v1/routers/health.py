from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Ready when Redis answers; also reports local socket counts."""
    errors: list[str] = []

    try:
        await request.app.state.redis.ping()
    except Exception as exc:  # noqa: BLE001
        errors.append(f"redis: {exc}")

    hub = request.app.state.hub
    sockets = {
        "connections": len(hub.registry),
        "authenticated": hub.registry.authenticated_count,
        "loadLevel": hub.load_monitor.level.value,
    }
    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors, "websocket": sockets},
        )
    return JSONResponse(content={"status": "ready", "websocket": sockets})
