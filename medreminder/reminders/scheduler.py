"""
Next-fire computation and arming of reminder jobs
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from medreminder.models.medication import Medication, MedicationKind, Frequency, DayOfWeek
from medreminder.utils.timemath import compose_reminder_time, next_weekday_on_or_after, now_local
from .config import settings
from .jobs import JobScheduler, FIRE_REMINDER_TASK
from .metrics import medications_armed_total, medications_schedule_exhausted_total

logger = logging.getLogger(__name__)


class NextFireCalculator:
    """Calculates the single next trigger instant for a medication"""

    @staticmethod
    def calculate(medication: Medication, current_time: Optional[datetime] = None) -> Optional[datetime]:
        if current_time is None:
            current_time = now_local()

        if medication.kind == MedicationKind.ONE_TIME.value:
            return NextFireCalculator._calculate_one_time(medication, current_time)
        if medication.kind == MedicationKind.RECURRING.value:
            return NextFireCalculator._calculate_recurring(medication, current_time)
        return None

    @staticmethod
    def _calculate_one_time(medication: Medication, current_time: datetime) -> Optional[datetime]:
        if medication.is_completed:
            return None
        if medication.reminder_date is None or not medication.reminder_time:
            return None
        fire_at = compose_reminder_time(medication.reminder_date, medication.reminder_time)
        # A past one-time reminder is never re-armed
        return fire_at if fire_at > current_time else None

    @staticmethod
    def _calculate_recurring(medication: Medication, current_time: datetime) -> Optional[datetime]:
        if medication.start_date is None or medication.end_date is None:
            return None

        reminder_time = (medication.reminder_times or [None])[0] or settings.DEFAULT_REMINDER_TIME

        # Never at or before now, and never at or before the last emitted reminder
        floor = max(current_time, medication.last_notified_at or current_time)
        base_day = max(medication.start_date, floor.date())

        candidate = compose_reminder_time(base_day, reminder_time)
        if candidate <= floor:
            candidate += timedelta(days=1)

        if medication.frequency == Frequency.WEEKLY.value and medication.day_of_week:
            # Moves forward or stays, never back into the current cycle
            candidate = next_weekday_on_or_after(candidate, DayOfWeek(medication.day_of_week).weekday)

        # end_date is an inclusive calendar day
        if candidate.date() > medication.end_date:
            return None
        return candidate


class ReminderScheduler:
    """Arms exactly one delayed fire job per medication.

    Each arm bumps the medication's schedule generation and stamps it on the
    job, so any job armed earlier is recognised as stale when it fires.
    """

    def __init__(self, db: Session, jobs: JobScheduler, now_fn: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.jobs = jobs
        self._now = now_fn or now_local

    def arm(self, medication: Medication) -> Optional[datetime]:
        """Arm the next reminder for ``medication``. Returns the fire instant, or None if nothing was armed."""
        now = self._now()
        fire_at = NextFireCalculator.calculate(medication, now)

        self.db.execute(
            update(Medication)
            .where(Medication.id == medication.id)
            .values(
                schedule_generation=Medication.schedule_generation + 1,
                next_fire_at=fire_at,
            )
        )
        self.db.commit()
        self.db.refresh(medication)

        if fire_at is None:
            medications_schedule_exhausted_total.inc()
            logger.info(
                f"[Scheduler] Nothing to arm | medication={medication.id} kind={medication.kind} "
                f"generation={medication.schedule_generation}"
            )
            return None

        self.jobs.run_at(
            fire_at,
            FIRE_REMINDER_TASK,
            {
                "medication_id": medication.id,
                "generation": medication.schedule_generation,
                "fire_at": fire_at.isoformat(),
            },
        )
        medications_armed_total.inc()
        logger.info(
            f"[Scheduler] Armed medication={medication.id} at {fire_at.isoformat()} "
            f"generation={medication.schedule_generation}"
        )
        return fire_at
