from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from typing import List, Optional, Tuple
from datetime import datetime, timezone
import logging

from app.modules.notifications.models import Notification, NotificationStatus
from app.modules.loans.models import Investment, Loan

logger = logging.getLogger(__name__)


class NotificationService:
    """
    In-app notifications for investors.
    Written by the notification worker, read through the notifications router.
    """

    @staticmethod
    async def notify_investors(db: AsyncSession, loan_id: int) -> List[Notification]:
        """
        Tell every investor of a fully funded loan that the agreement is ready.
        Investors already notified for this loan are skipped, so a redelivered
        event does not produce duplicates.
        """
        loan = await db.get(Loan, loan_id)
        if loan is None:
            logger.warning(f"Fully-funded event for unknown loan {loan_id}, skipping")
            return []

        contributions = await db.execute(
            select(Investment.investor_id, func.sum(Investment.amount))
            .where(Investment.loan_id == loan_id)
            .group_by(Investment.investor_id)
            .order_by(Investment.investor_id)
        )
        already_notified = set(
            (await db.execute(
                select(Notification.recipient_id).where(Notification.loan_id == loan_id)
            )).scalars().all()
        )

        notifications = []
        for investor_id, invested in contributions.all():
            if investor_id in already_notified:
                continue
            notification = Notification(
                recipient_id=investor_id,
                loan_id=loan_id,
                title="Loan fully funded",
                message=(
                    f"Loan #{loan_id} has been fully funded. "
                    f"Please review the loan agreement: {loan.agreement_link}"
                ),
                status=NotificationStatus.DELIVERED,
                extra_data={
                    "agreement_link": loan.agreement_link,
                    "invested_amount": str(invested),
                },
            )
            db.add(notification)
            notifications.append(notification)

        await db.commit()
        for n in notifications:
            await db.refresh(n)

        logger.info(f"Notified {len(notifications)} investor(s) of loan {loan_id}")
        return notifications

    @staticmethod
    async def get_investor_notifications(
        db: AsyncSession,
        investor_id: int,
        skip: int = 0,
        limit: int = 20,
        unread_only: bool = False
    ) -> Tuple[List[Notification], int, int]:
        """Get investor notifications with filtering and pagination"""
        query = select(Notification).where(Notification.recipient_id == investor_id)
        if unread_only:
            query = query.where(Notification.read_at.is_(None))

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = await db.scalar(count_query)

        # Get unread count
        unread_query = select(func.count()).where(
            and_(Notification.recipient_id == investor_id, Notification.read_at.is_(None))
        )
        unread_count = await db.scalar(unread_query)

        query = query.order_by(Notification.id.desc()).offset(skip).limit(limit)
        result = await db.execute(query)
        notifications = result.scalars().all()

        return list(notifications), total or 0, unread_count or 0

    @staticmethod
    async def get_notification(db: AsyncSession, notification_id: int, investor_id: int) -> Optional[Notification]:
        query = select(Notification).where(
            and_(Notification.id == notification_id, Notification.recipient_id == investor_id)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_as_read(db: AsyncSession, notification_id: int, investor_id: int) -> Optional[Notification]:
        """Mark notification as read"""
        notification = await NotificationService.get_notification(db, notification_id, investor_id)
        if notification and not notification.read_at:
            notification.read_at = datetime.now(timezone.utc)
            notification.status = NotificationStatus.READ
            await db.commit()
            await db.refresh(notification)
        return notification
