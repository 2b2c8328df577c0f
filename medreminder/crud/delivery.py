from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, update

from medreminder.models.delivery import DeliveryMessage, DeliveryStatus


def add_message(
    db: Session,
    user_id: int,
    destination: str,
    subject: str,
    body: str,
    created_at: datetime,
    attachments: Optional[List[str]] = None,
) -> DeliveryMessage:
    """Add a pending message to the session; the caller commits."""
    message = DeliveryMessage(
        user_id=user_id,
        destination=destination,
        subject=subject,
        body=body,
        attachments=list(attachments or []),
        status=DeliveryStatus.PENDING.value,
        created_at=created_at,
    )
    db.add(message)
    return message


def list_pending(db: Session, limit: int = 500) -> List[DeliveryMessage]:
    stmt = (
        select(DeliveryMessage)
        .where(DeliveryMessage.status == DeliveryStatus.PENDING.value)
        .order_by(DeliveryMessage.created_at.asc(), DeliveryMessage.id.asc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())


def list_for_user(db: Session, user_id: int) -> List[DeliveryMessage]:
    stmt = (
        select(DeliveryMessage)
        .where(DeliveryMessage.user_id == user_id)
        .order_by(DeliveryMessage.created_at.asc(), DeliveryMessage.id.asc())
    )
    return list(db.execute(stmt).scalars())


def claim_message(db: Session, message_id: int) -> bool:
    """Move a message Pending -> Sending. Returns False when another drain claimed it first."""
    result = db.execute(
        update(DeliveryMessage)
        .where(DeliveryMessage.id == message_id)
        .where(DeliveryMessage.status == DeliveryStatus.PENDING.value)
        .values(status=DeliveryStatus.SENDING.value)
    )
    db.commit()
    return result.rowcount == 1


def mark_sent(db: Session, message_id: int, sent_at: datetime) -> None:
    db.execute(
        update(DeliveryMessage)
        .where(DeliveryMessage.id == message_id)
        .where(DeliveryMessage.status == DeliveryStatus.SENDING.value)
        .values(status=DeliveryStatus.SENT.value, sent_at=sent_at)
    )
    db.commit()


def mark_failed(db: Session, message_id: int, reason: str) -> None:
    db.execute(
        update(DeliveryMessage)
        .where(DeliveryMessage.id == message_id)
        .where(DeliveryMessage.status == DeliveryStatus.SENDING.value)
        .values(status=DeliveryStatus.FAILED.value, failure_reason=reason)
    )
    db.commit()
