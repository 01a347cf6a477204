"""
Outbound "loan fully funded" events.

The lifecycle hands a loan id to ``dispatch_fully_funded`` after the funding
write has committed. Delivery runs as a background task with a deadline, and
any failure is logged and dropped: the caller of invest never sees it.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Set
import asyncio
import logging

from redis import asyncio as aioredis

from app.core.config import settings
from app.modules.notifications.schemas import FundingEvent

logger = logging.getLogger(__name__)

# Strong references to in-flight dispatches, the event loop only keeps weak ones
_pending: Set[asyncio.Task] = set()


class FundingNotifier(ABC):
    @abstractmethod
    async def notify_fully_funded(self, loan_id: int) -> None:
        pass


class RedisFundingNotifier(FundingNotifier):
    """Publishes funding events onto a Redis list consumed by the notification worker"""

    def __init__(self, redis: aioredis.Redis, queue_key: str = None, timeout: float = None):
        self.redis = redis
        self.queue_key = queue_key or settings.FUNDING_QUEUE_KEY
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS

    async def notify_fully_funded(self, loan_id: int) -> None:
        event = FundingEvent(loan_id=loan_id, occurred_at=datetime.now(timezone.utc))
        await asyncio.wait_for(
            self.redis.lpush(self.queue_key, event.model_dump_json()),
            timeout=self.timeout
        )
        logger.info(f"Queued fully-funded event for loan {loan_id}")


async def _deliver(notifier: FundingNotifier, loan_id: int) -> None:
    try:
        await notifier.notify_fully_funded(loan_id)
    except Exception:
        logger.exception(f"Fully-funded notification for loan {loan_id} failed")


def dispatch_fully_funded(notifier: FundingNotifier, loan_id: int) -> asyncio.Task:
    """Fire-and-forget delivery of a fully-funded event"""
    task = asyncio.create_task(_deliver(notifier, loan_id))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain_notifications() -> None:
    """Wait for in-flight dispatches, used on shutdown and in tests"""
    if _pending:
        await asyncio.gather(*list(_pending))
