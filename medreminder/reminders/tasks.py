from datetime import datetime
from typing import Optional
import logging

from celery import shared_task

from medreminder.db.session import session_scope
from .dispatcher import NotificationDispatcher
from .jobs import CeleryJobScheduler
from .metrics import reminder_fire_failed_total
from .reconcile import reconcile_schedules
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


@shared_task(name="reminders.fire")
def fire_reminder_task(medication_id: int, generation: Optional[int] = None, fire_at: Optional[str] = None) -> bool:
    """Fire a reminder for one medication. Returns True if a message was queued."""
    try:
        with session_scope() as db:
            jobs = CeleryJobScheduler()
            dispatcher = NotificationDispatcher(db, ReminderScheduler(db, jobs))
            return dispatcher.on_fire(
                medication_id,
                generation=generation,
                fire_at=datetime.fromisoformat(fire_at) if fire_at else None,
            )
    except Exception as e:
        # Not re-raised; the reconcile sweep picks the medication up
        reminder_fire_failed_total.inc()
        logger.exception(f"[Dispatch] Firing failed for medication={medication_id}: {e!r}")
        return False


@shared_task(name="reminders.reconcile")
def reconcile_task() -> int:
    """Repair medications without a live reminder job. Returns the number repaired."""
    with session_scope() as db:
        repaired = reconcile_schedules(db, CeleryJobScheduler())
    logger.info(f"[Reconcile] Sweep finished, repaired={repaired}")
    return repaired
