from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.modules.notifications import schemas
from app.modules.notifications.services import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=schemas.NotificationListResponse)
async def get_notifications(
    investor_id: int = Query(..., description="Recipient investor id"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    unread_only: bool = Query(False, description="Only show unread"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get paginated list of notifications for an investor.
    
    - Returns total count and unread count
    """
    skip = (page - 1) * limit

    notifications, total, unread_count = await NotificationService.get_investor_notifications(
        db=db,
        investor_id=investor_id,
        skip=skip,
        limit=limit,
        unread_only=unread_only
    )

    return schemas.NotificationListResponse(
        notifications=[schemas.NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
        page=page,
        limit=limit
    )


@router.put("/{notification_id}/read", response_model=schemas.NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    investor_id: int = Query(..., description="Recipient investor id"),
    db: AsyncSession = Depends(get_db)
):
    """Mark a specific notification as read"""
    notification = await NotificationService.mark_as_read(db, notification_id, investor_id)
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return notification
