"""Entrypoint: python -m realtime_service"""
from __future__ import annotations

import uvicorn

from realtime_service.config import settings
from realtime_service.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "realtime_service.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
