from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "realtime.fanout"
    REDIS_PUBSUB_ENABLED: bool = True

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str | None = "edupath-app"
    JWT_AUDIENCE: str | None = "edupath-users"
    JWKS_URL: str | None = None

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    WS_PATH: str = "/ws"
    WS_HEARTBEAT_SECONDS: float = 20.0
    WS_IDLE_TIMEOUT_SECONDS: float = 60.0
    WS_STATS_LOG_SECONDS: float = 30.0

    WS_CONNECTION_LIMIT: int = 1000
    WS_WARNING_THRESHOLD: int = 800

    WS_RATE_LIMIT_MESSAGES: int = 30
    WS_RATE_LIMIT_WINDOW_SECONDS: float = 10.0

    WS_MAX_AUTH_FAILURES: int = 3

    CHAT_MAX_MESSAGE_LENGTH: int = 100
    CHAT_SEND_COOLDOWN_SECONDS: float = 15.0

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
