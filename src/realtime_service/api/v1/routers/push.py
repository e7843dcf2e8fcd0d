"""Internal endpoints through which domain services push events to connected users."""
from __future__ import annotations

from fastapi import APIRouter

from realtime_service.api.deps import HubDep, InternalPrincipal
from realtime_service.api.v1.schemas.common import DeliveryResponse
from realtime_service.api.v1.schemas.push import (
    ApplicationUpdatePushRequest,
    NotificationPushRequest,
    StatsResponse,
    TopicPushRequest,
)
from realtime_service.services import push_service

router = APIRouter(prefix="/api/v1/realtime", tags=["realtime"])


@router.post("/notifications", response_model=DeliveryResponse, status_code=202)
async def push_notification(
    body: NotificationPushRequest,
    _principal: InternalPrincipal,
    hub: HubDep,
) -> DeliveryResponse:
    delivered = await push_service.push_notification(hub.router, body.to_entity())
    return DeliveryResponse(delivered=delivered)


@router.post("/application-updates", response_model=DeliveryResponse, status_code=202)
async def push_application_update(
    body: ApplicationUpdatePushRequest,
    _principal: InternalPrincipal,
    hub: HubDep,
) -> DeliveryResponse:
    delivered = await push_service.push_application_update(hub.router, body.user_id, body.update)
    return DeliveryResponse(delivered=delivered)


@router.post("/topics/{topic}", response_model=DeliveryResponse, status_code=202)
async def push_topic(
    topic: str,
    body: TopicPushRequest,
    _principal: InternalPrincipal,
    hub: HubDep,
) -> DeliveryResponse:
    delivered = await push_service.push_topic(hub.router, topic, body.type, body.data)
    return DeliveryResponse(delivered=delivered)


@router.get("/stats", response_model=StatsResponse, response_model_by_alias=True)
async def stats(_principal: InternalPrincipal, hub: HubDep) -> StatsResponse:
    raw = hub.registry.stats()
    return StatsResponse(
        total_connections=raw["totalConnections"],
        authenticated_connections=raw["authenticatedConnections"],
        load_level=hub.load_monitor.level.value,
        limit=hub.load_monitor.limit,
        timestamp=raw["timestamp"],
    )
