from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Index

from medreminder.db.base import Base


class DeliveryStatus(str, Enum):
    """Pending -> Sending -> Sent | Failed"""
    PENDING = "pending"
    SENDING = "sending"  # claimed by a drain
    SENT = "sent"
    FAILED = "failed"


class DeliveryMessage(Base):
    """Outbound message waiting for the mail sender"""
    __tablename__ = "delivery_messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    destination = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    attachments = Column(JSON, nullable=False, default=list)  # urls
    status = Column(String, nullable=False, default=DeliveryStatus.PENDING.value)
    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    sent_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_delivery_messages_status_created", "status", "created_at"),
    )
