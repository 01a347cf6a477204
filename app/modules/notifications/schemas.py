from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum


class NotificationStatusEnum(str, Enum):
    DELIVERED = "delivered"
    READ = "read"


class FundingEvent(BaseModel):
    """Queue payload published when a loan becomes fully funded"""
    event: str = "loan.fully_funded"
    loan_id: int
    occurred_at: datetime


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    loan_id: int
    title: str
    message: str
    status: NotificationStatusEnum
    extra_data: Optional[Dict[str, Any]] = None
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    limit: int
