"""Dev helper: seed a counselor assignment and a couple of chat messages in Redis."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone

import redis.asyncio as aioredis

from realtime_service.config import settings
from realtime_service.domain.entities.chat_message import ChatMessage
from realtime_service.infrastructure.chat.redis_store import RedisChatStore

logger = logging.getLogger(__name__)

STUDENT_ID = "student-42"
COUNSELOR_ID = "counselor-1"


async def seed() -> None:
    r = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        store = RedisChatStore(r)
        await store.assign_counselor(STUDENT_ID, COUNSELOR_ID)

        messages_data = [
            (STUDENT_ID, "Hi! I need help with my university application."),
            (COUNSELOR_ID, "Of course. Which programs are you applying to?"),
        ]
        for sender_id, body in messages_data:
            await store.create(
                ChatMessage(
                    id=str(uuid.uuid4()),
                    student_id=STUDENT_ID,
                    counselor_id=COUNSELOR_ID,
                    sender_id=sender_id,
                    body=body,
                    created_at=datetime.now(timezone.utc),
                )
            )
        logger.info(
            "Assigned %s to %s and seeded %d messages", STUDENT_ID, COUNSELOR_ID, len(messages_data),
        )
    finally:
        await r.aclose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
