"""Publish one event on the fan-out channel.

    python -m realtime_service.scripts.publish_event notification '{"id": "n1", ...}'
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging

import redis.asyncio as aioredis

from realtime_service.application.ports.bus import EventPublisher
from realtime_service.config import settings
from realtime_service.infrastructure.bus.redis_pubsub import RedisPubSubPublisher

logger = logging.getLogger(__name__)


async def publish(event_type: str, data: dict) -> None:
    r = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        publisher: EventPublisher = RedisPubSubPublisher(r)
        await publisher.publish(settings.REDIS_PUBSUB_CHANNEL, event_type, data)
        logger.info("Published %s on %s", event_type, settings.REDIS_PUBSUB_CHANNEL)
    finally:
        await r.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("event_type", help="notification | application_update | topic | broadcast")
    parser.add_argument("data", help="JSON object with the event data")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(publish(args.event_type, json.loads(args.data)))


if __name__ == "__main__":
    main()
