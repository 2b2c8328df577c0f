from celery import shared_task

from medreminder.db.session import session_scope
from medreminder.reminders.config import settings
from .mailer import get_mail_sender
from .queue import drain_pending


@shared_task(name="delivery.drain")
def drain_delivery_task() -> int:
    """Send every Pending message once. Returns the number sent."""
    with session_scope() as db:
        return drain_pending(db, get_mail_sender(), limit=settings.DELIVERY_BATCH_SIZE)
