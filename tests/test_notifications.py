"""
Tests for fully-funded notifications: queue publishing, worker and investor inbox
"""
import pytest
import asyncio
import logging
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from app.core.config import settings
from app.modules.loans.models import Investment, LoanState
from app.modules.notifications.models import NotificationStatus
from app.modules.notifications.notifier import RedisFundingNotifier, dispatch_fully_funded
from app.modules.notifications.schemas import FundingEvent
from app.modules.notifications.services import NotificationService
from app.modules.notifications.worker import consume_once, handle_event


@pytest.fixture
def funded_loan(db_session, loan_factory):
    """An INVESTED loan funded by investor 2 (twice) and investor 3"""

    async def _create():
        loan = await loan_factory(LoanState.INVESTED)
        for investor_id, amount in [(2, "300"), (3, "500"), (2, "200")]:
            db_session.add(Investment(loan_id=loan.id, investor_id=investor_id, amount=Decimal(amount)))
        await db_session.commit()
        return loan

    return _create


class TestRedisFundingNotifier:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_event_pushed_onto_queue(self):
        redis = AsyncMock()
        notifier = RedisFundingNotifier(redis)

        await notifier.notify_fully_funded(5)

        redis.lpush.assert_awaited_once()
        key, payload = redis.lpush.await_args.args
        assert key == settings.FUNDING_QUEUE_KEY
        event = FundingEvent.model_validate_json(payload)
        assert event.loan_id == 5
        assert event.event == "loan.fully_funded"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_queue_times_out(self):
        async def stalled(*args):
            await asyncio.sleep(5)

        redis = AsyncMock()
        redis.lpush.side_effect = stalled
        notifier = RedisFundingNotifier(redis, timeout=0.01)

        with pytest.raises(asyncio.TimeoutError):
            await notifier.notify_fully_funded(5)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dispatch_swallows_failures(self, caplog):
        redis = AsyncMock()
        redis.lpush.side_effect = ConnectionError("redis down")

        with caplog.at_level(logging.ERROR):
            await dispatch_fully_funded(RedisFundingNotifier(redis), 9)

        assert "loan 9 failed" in caplog.text


class TestNotifyInvestors:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_one_notification_per_investor(self, db_session, funded_loan):
        loan = await funded_loan()

        notifications = await NotificationService.notify_investors(db_session, loan.id)

        assert [n.recipient_id for n in notifications] == [2, 3]
        by_investor = {n.recipient_id: n for n in notifications}
        assert Decimal(by_investor[2].extra_data["invested_amount"]) == Decimal("500")
        assert by_investor[3].extra_data["agreement_link"] == "http://agreement.link"
        assert "http://agreement.link" in by_investor[2].message
        assert all(n.status == NotificationStatus.DELIVERED for n in notifications)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_redelivered_event_is_ignored(self, db_session, funded_loan):
        loan = await funded_loan()

        await NotificationService.notify_investors(db_session, loan.id)
        repeat = await NotificationService.notify_investors(db_session, loan.id)

        assert repeat == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_loan(self, db_session):
        assert await NotificationService.notify_investors(db_session, 404) == []


class TestWorker:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_handle_event(self, db_session, funded_loan):
        loan = await funded_loan()
        payload = FundingEvent(loan_id=loan.id, occurred_at=datetime.now(timezone.utc)).model_dump_json()

        assert await handle_event(db_session, payload) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_event_dropped(self, db_session):
        assert await handle_event(db_session, "{not json") is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_consume_once(self, session_factory, funded_loan):
        loan = await funded_loan()
        payload = FundingEvent(loan_id=loan.id, occurred_at=datetime.now(timezone.utc)).model_dump_json()
        redis = AsyncMock()
        redis.brpop.return_value = (settings.FUNDING_QUEUE_KEY, payload)

        assert await consume_once(redis, session_factory) is True

        async with session_factory() as session:
            notifications, total, unread = await NotificationService.get_investor_notifications(session, 3)
        assert total == 1
        assert unread == 1
        assert notifications[0].loan_id == loan.id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_consume_once_idle(self, session_factory):
        redis = AsyncMock()
        redis.brpop.return_value = None

        assert await consume_once(redis, session_factory) is False


class TestNotificationsEndpoint:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, client, db_session, funded_loan):
        loan = await funded_loan()
        await NotificationService.notify_investors(db_session, loan.id)

        response = await client.get("/api/v1/notifications", params={"investor_id": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["unread_count"] == 1
        notification_id = data["notifications"][0]["id"]

        response = await client.put(
            f"/api/v1/notifications/{notification_id}/read", params={"investor_id": 2}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "read"

        unread = await client.get("/api/v1/notifications", params={"investor_id": 2, "unread_only": True})
        assert unread.json()["total"] == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_mark_read_of_someone_else(self, client, db_session, funded_loan):
        loan = await funded_loan()
        notifications = await NotificationService.notify_investors(db_session, loan.id)

        response = await client.put(
            f"/api/v1/notifications/{notifications[0].id}/read", params={"investor_id": 99}
        )
        assert response.status_code == 404
