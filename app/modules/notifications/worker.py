"""
Notification worker.

Consumes fully-funded events from the Redis queue and writes in-app
notifications for the loan's investors. Run with:

    python -m app.modules.notifications.worker
"""
from typing import Optional
import asyncio
import logging

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from redis import asyncio as aioredis

from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_redis, close_redis
from app.core.logging_config import setup_logging
from app.modules.notifications.schemas import FundingEvent
from app.modules.notifications.services import NotificationService

logger = logging.getLogger(__name__)


async def handle_event(db: AsyncSession, payload: str) -> Optional[int]:
    """Process one queued event, returning the number of notifications written"""
    try:
        event = FundingEvent.model_validate_json(payload)
    except ValidationError as e:
        logger.error(f"Dropping malformed funding event {payload!r}: {str(e)}")
        return None

    notifications = await NotificationService.notify_investors(db, event.loan_id)
    return len(notifications)


async def consume_once(redis: aioredis.Redis, session_factory=AsyncSessionLocal) -> bool:
    """Block for at most one poll interval; return True if an event was taken off the queue"""
    item = await redis.brpop([settings.FUNDING_QUEUE_KEY], timeout=settings.WORKER_POLL_TIMEOUT_SECONDS)
    if item is None:
        return False

    _, payload = item
    async with session_factory() as session:
        try:
            await handle_event(session, payload)
        except Exception:
            await session.rollback()
            logger.exception(f"Failed to process funding event {payload!r}")
    return True


async def run_worker() -> None:
    redis = await get_redis()
    logger.info(f"Notification worker listening on {settings.FUNDING_QUEUE_KEY}")
    try:
        while True:
            await consume_once(redis)
    finally:
        await close_redis()


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    asyncio.run(run_worker())
