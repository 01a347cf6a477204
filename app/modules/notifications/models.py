from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum, ForeignKey, JSON
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class NotificationStatus(str, enum.Enum):
    """Status of an in-app notification"""
    DELIVERED = "delivered"
    READ = "read"


class Notification(Base):
    """
    In-app notification addressed to an investor.
    Written by the notification worker when a loan they invested in is fully funded.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.DELIVERED, nullable=False, index=True)

    # e.g. {"agreement_link": "...", "invested_amount": "300.00"}
    extra_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
