"""
Sweep for medications left without a live reminder job.

A medication can lose its job if the process dies between committing the row
and publishing the job, or if the broker drops a delayed message. Never-armed
medications are armed; overdue jobs are fired late through the dispatcher,
which re-arms recurring schedules. Either path bumps or checks the schedule
generation, so a late original job becomes a no-op.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from medreminder.crud.medication import list_needing_reconciliation
from medreminder.utils.timemath import now_local
from .config import settings
from .dispatcher import NotificationDispatcher
from .jobs import JobScheduler
from .metrics import reconcile_rearmed_total
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


def reconcile_schedules(
    db: Session,
    jobs: JobScheduler,
    now_fn: Optional[Callable[[], datetime]] = None,
    grace_seconds: Optional[int] = None,
    limit: Optional[int] = None,
) -> int:
    """Repair never-armed and overdue medications. Returns how many were repaired."""
    now_fn = now_fn or now_local
    now = now_fn()
    grace = timedelta(seconds=settings.RECONCILE_GRACE_SECONDS if grace_seconds is None else grace_seconds)

    candidates = list_needing_reconciliation(
        db,
        overdue_before=now - grace,
        today=now.date(),
        limit=limit or settings.RECONCILE_BATCH_SIZE,
    )
    scheduler = ReminderScheduler(db, jobs, now_fn=now_fn)
    dispatcher = NotificationDispatcher(db, scheduler, now_fn=now_fn)
    repaired = 0
    for medication in candidates:
        try:
            if medication.schedule_generation == 0:
                logger.warning(f"[Reconcile] Arming never-armed medication={medication.id}")
                scheduler.arm(medication)
            else:
                logger.warning(
                    f"[Reconcile] Job for medication={medication.id} due {medication.next_fire_at} never fired; "
                    f"firing late (generation={medication.schedule_generation})"
                )
                dispatcher.on_fire(
                    medication.id,
                    generation=medication.schedule_generation,
                    fire_at=medication.next_fire_at,
                )
            repaired += 1
            reconcile_rearmed_total.inc()
        except Exception as e:
            db.rollback()
            logger.error(f"[Reconcile] Failed to repair medication={medication.id}: {e!r}")
    return repaired
