from datetime import datetime, time
from typing import Callable, Optional
import html
import logging

from sqlalchemy.orm import Session

from medreminder.crud.user import get_user
from medreminder.crud.medication import get_medication, stamp_notified
from medreminder.delivery.queue import enqueue_message
from medreminder.models.medication import Medication, MedicationKind
from medreminder.utils.timemath import is_same_day, now_local
from .scheduler import ReminderScheduler
from .metrics import reminder_fires_dispatched_total, reminder_fires_skipped_total

logger = logging.getLogger(__name__)


def reminder_subject(medication: Medication) -> str:
    return f"Medication Reminder: {medication.name}"


def reminder_body(medication: Medication) -> str:
    description = f"<p>Description: {html.escape(medication.description)}</p>" if medication.description else ""
    return (
        "<h1>Medication Reminder</h1>"
        f"<p>It's time to take your medicine: {html.escape(medication.name)}</p>"
        f"{description}"
        "<p>Please log in to mark this medication as taken.</p>"
    )


class NotificationDispatcher:
    """Handles a fired reminder job.

    Safe to run more than once for the same occurrence, including overlapping
    runs: the medication is re-read on every firing, and the notification
    stamp is a conditional update committed with the message, so only one run
    per occurrence queues a reminder.
    """

    def __init__(self, db: Session, scheduler: ReminderScheduler, now_fn: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.scheduler = scheduler
        self._now = now_fn or now_local

    def on_fire(
        self,
        medication_id: int,
        generation: Optional[int] = None,
        fire_at: Optional[datetime] = None,
    ) -> bool:
        """Returns True when a reminder message was queued."""
        now = self._now()
        medication = get_medication(self.db, medication_id)

        reason = self._skip_reason(medication, generation, fire_at, now)
        if reason:
            reminder_fires_skipped_total.labels(reason=reason).inc()
            logger.info(f"[Dispatch] Skipping medication={medication_id} reason={reason}")
            return False

        user = get_user(self.db, medication.user_id)
        if user is None:
            reminder_fires_skipped_total.labels(reason="owner_missing").inc()
            logger.warning(f"[Dispatch] Owner {medication.user_id} of medication={medication_id} not found")
            return False

        # Claim the occurrence before queueing; the stamp and message commit together
        not_since = fire_at if fire_at is not None else datetime.combine(now.date(), time.min)
        if not stamp_notified(self.db, medication.id, medication.schedule_generation, now, not_since):
            self.db.rollback()
            reminder_fires_skipped_total.labels(reason="duplicate").inc()
            logger.info(f"[Dispatch] Skipping medication={medication_id} reason=duplicate (claimed concurrently)")
            return False
        enqueue_message(
            self.db,
            user,
            subject=reminder_subject(medication),
            body=reminder_body(medication),
            created_at=now,
            commit=False,
        )
        self.db.commit()
        self.db.refresh(medication)
        reminder_fires_dispatched_total.inc()
        logger.info(f"[Dispatch] Queued reminder for medication={medication_id} user={user.id}")

        if medication.is_recurring:
            self.scheduler.arm(medication)
        return True

    @staticmethod
    def _skip_reason(
        medication: Optional[Medication],
        generation: Optional[int],
        fire_at: Optional[datetime],
        now: datetime,
    ) -> Optional[str]:
        if medication is None:
            return "deleted"
        if generation is not None and generation != medication.schedule_generation:
            return "stale"
        if medication.kind == MedicationKind.ONE_TIME.value and medication.is_completed:
            return "completed"
        if medication.is_recurring and (medication.end_date is None or now.date() > medication.end_date):
            return "ended"
        if medication.last_notified_at is not None:
            if fire_at is not None:
                if medication.last_notified_at >= fire_at:
                    return "duplicate"
            elif is_same_day(medication.last_notified_at, now):
                return "duplicate"
        return None
