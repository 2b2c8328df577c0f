"""
Durable mailbox of outbound messages.

Producers add Pending rows; the periodic drain hands each one to the mail
sender exactly once and records Sent or Failed.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from medreminder.crud import delivery as delivery_crud
from medreminder.models.delivery import DeliveryMessage
from medreminder.models.user import User
from medreminder.reminders.metrics import delivery_sent_total, delivery_failed_total
from medreminder.utils.timemath import now_local
from .mailer import MailSender

logger = logging.getLogger(__name__)


def enqueue_message(
    db: Session,
    user: User,
    subject: str,
    body: str,
    attachments: Optional[List[str]] = None,
    created_at: Optional[datetime] = None,
    commit: bool = True,
) -> DeliveryMessage:
    """Queue a message to ``user``. Pass ``commit=False`` to join the caller's transaction."""
    message = delivery_crud.add_message(
        db,
        user_id=user.id,
        destination=user.email,
        subject=subject,
        body=body,
        created_at=created_at or now_local(),
        attachments=attachments,
    )
    if commit:
        db.commit()
        db.refresh(message)
    return message


def drain_pending(
    db: Session,
    sender: MailSender,
    limit: int = 500,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> int:
    """Attempt every Pending message once. Returns the number sent.

    Each message is claimed (Pending -> Sending) before it is handed to the
    sender; one already claimed by another drain is skipped. A message whose
    drain dies mid-send stays in Sending.
    """
    now_fn = now_fn or now_local
    pending = delivery_crud.list_pending(db, limit=limit)
    sent = 0
    claimed = 0
    for message in pending:
        if not delivery_crud.claim_message(db, message.id):
            logger.info(f"[Delivery] Message={message.id} already claimed by another drain")
            continue
        claimed += 1
        try:
            sender.send(message)
        except Exception as e:
            logger.error(f"[Delivery] Failed to send message={message.id} to {message.destination}: {e!r}")
            delivery_crud.mark_failed(db, message.id, reason=str(e))
            delivery_failed_total.inc()
            continue
        delivery_crud.mark_sent(db, message.id, sent_at=now_fn())
        delivery_sent_total.inc()
        sent += 1
    if claimed:
        logger.info(f"[Delivery] Drained {claimed} message(s), sent={sent} failed={claimed - sent}")
    return sent
