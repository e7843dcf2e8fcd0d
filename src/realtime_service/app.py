from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from realtime_service.api.deps import get_verifier
from realtime_service.api.middleware.correlation_id import CorrelationIdMiddleware
from realtime_service.api.middleware.metrics import RequestTimingMiddleware
from realtime_service.api.v1.routers import chat, health, push, ws
from realtime_service.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from realtime_service.config import settings
from realtime_service.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from realtime_service.infrastructure.chat.redis_store import RedisChatStore
from realtime_service.infrastructure.ws.hub import build_hub
from realtime_service.services import push_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    hub = app.state.hub
    await hub.start()

    subscriber: RedisPubSubSubscriber | None = None
    if settings.REDIS_PUBSUB_ENABLED:

        async def _on_pubsub_event(event_type: str, data: dict[str, Any]) -> None:
            await push_service.dispatch_bus_event(app.state.hub.router, event_type, data)

        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            _on_pubsub_event,
        )
        await subscriber.start()

    yield

    if subscriber is not None:
        await subscriber.stop()
    await app.state.hub.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="EduPath Realtime Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    app.state.hub = build_hub(settings, get_verifier(), RedisChatStore(app.state.redis))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(push.router)
    app.include_router(chat.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(RateLimitedError)
    async def _rate_limited(_req: Request, exc: RateLimitedError) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"detail": exc.detail},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
