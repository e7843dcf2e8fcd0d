from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

DEFAULT_HOST = "localhost:5000"


class ClientSettings(BaseSettings):
    # explicit socket URL for deployments where API and front end are hosted apart
    WS_URL: str | None = None
    ORIGIN: str = f"http://{DEFAULT_HOST}"
    WS_PATH: str = "/ws"
    API_BASE_URL: str | None = None

    HEARTBEAT_SECONDS: float = 20.0
    MISSED_HEARTBEATS: int = 3
    AUTH_DELAY_SECONDS: float = 0.1

    AUTO_RECONNECT: bool = True
    RECONNECT_BASE_DELAY_SECONDS: float = 1.0
    RECONNECT_MAX_DELAY_SECONDS: float = 30.0
    NOT_READY_RETRY_SECONDS: float = 1.0

    model_config = ConfigDict(
        env_prefix="REALTIME_CLIENT_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def ws_url(self) -> str:
        return build_ws_url(self.WS_URL, self.ORIGIN, self.WS_PATH)

    @property
    def api_base_url(self) -> str:
        return self.API_BASE_URL or self.ORIGIN


def build_ws_url(override: str | None, origin: str, path: str = "/ws") -> str:
    """Explicit override wins; otherwise derive ws(s)://host/path from the page origin."""
    if override:
        return override
    parts = urlsplit(origin)
    scheme = "wss" if parts.scheme == "https" else "ws"
    host = parts.netloc or DEFAULT_HOST
    return f"{scheme}://{host}{path}"
