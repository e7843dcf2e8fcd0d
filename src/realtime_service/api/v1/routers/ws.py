from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from realtime_service.config import settings
from realtime_service.infrastructure.ws.hub import RealtimeHub

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

INTERNAL_ERROR = 1011


@router.websocket(settings.WS_PATH)
async def ws_endpoint(websocket: WebSocket) -> None:
    hub: RealtimeHub = websocket.app.state.hub
    await websocket.accept()
    connection_id = await hub.router.open(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # text and binary frames both carry JSON envelopes
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await hub.router.dispatch(connection_id, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", connection_id)
        await hub.registry.close(connection_id, INTERNAL_ERROR, "Internal error")
    finally:
        await hub.router.close(connection_id)
