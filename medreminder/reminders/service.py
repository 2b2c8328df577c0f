"""
Medication lifecycle: create/edit/delete with re-arming, mark-as-taken, listings
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from medreminder.core import errors
from medreminder.crud import medication as medication_crud
from medreminder.crud import medication_log as log_crud
from medreminder.models.medication import Medication, MedicationKind, MedicationLog, Frequency
from medreminder.schemas.medication import MedicationCreate, MedicationUpdate, MedicationRead, MedicationLogRead
from medreminder.utils.timemath import is_same_day, now_local, parse_hhmm
from .jobs import JobScheduler
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

_ONE_TIME_FIELDS = ("reminder_date", "reminder_time")
_RECURRING_FIELDS = ("frequency", "day_of_week", "start_date", "end_date", "reminder_times")


def validate_schedule(fields: Dict[str, Any]) -> None:
    """Check the recurrence invariants of a medication's merged field set.

    Raises errors.ValidationError describing the first violation.
    """
    kind = fields.get("kind")
    if kind == MedicationKind.ONE_TIME.value:
        if not fields.get("reminder_date") or not fields.get("reminder_time"):
            raise errors.ValidationError("One-time medication requires date and time")
        stray = [name for name in _RECURRING_FIELDS if fields.get(name)]
        if stray:
            raise errors.ValidationError(f"One-time medication cannot set {', '.join(stray)}")
        _check_hhmm(fields["reminder_time"])
    elif kind == MedicationKind.RECURRING.value:
        if not fields.get("frequency") or not fields.get("start_date") or not fields.get("end_date"):
            raise errors.ValidationError("Recurring medication requires frequency, start date, and end date")
        if fields["end_date"] < fields["start_date"]:
            raise errors.ValidationError("End date must not be before start date")
        if fields["frequency"] == Frequency.WEEKLY.value and not fields.get("day_of_week"):
            raise errors.ValidationError("Weekly medication requires day of week")
        if fields["frequency"] == Frequency.DAILY.value and fields.get("day_of_week"):
            raise errors.ValidationError("Daily medication cannot set day of week")
        stray = [name for name in _ONE_TIME_FIELDS if fields.get(name)]
        if stray:
            raise errors.ValidationError(f"Recurring medication cannot set {', '.join(stray)}")
        for hhmm in fields.get("reminder_times") or []:
            _check_hhmm(hhmm)
    else:
        raise errors.ValidationError(f"Unknown reminder kind {kind!r}")


def _check_hhmm(value: str) -> None:
    try:
        parse_hhmm(value)
    except ValueError as e:
        raise errors.ValidationError(str(e)) from e


def _enum_values(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (v.value if hasattr(v, "value") else v) for k, v in values.items()}


def needs_taking_today(medication: Medication, now: datetime) -> bool:
    if medication.kind == MedicationKind.ONE_TIME.value:
        return not medication.is_completed
    return not is_same_day(medication.last_taken_at, now)


class MedicationService:
    """Medication operations; every schedule-affecting mutation re-arms the reminder"""

    def __init__(self, db: Session, jobs: JobScheduler, now_fn: Optional[Callable[[], datetime]] = None):
        self.db = db
        self._now = now_fn or now_local
        self.scheduler = ReminderScheduler(db, jobs, now_fn=self._now)

    def create_medication(self, data: MedicationCreate) -> Medication:
        fields = _enum_values(data.model_dump())
        validate_schedule(fields)
        fields["is_completed"] = False
        medication = medication_crud.create_medication(self.db, fields)
        logger.info(f"[Medications] Created medication={medication.id} user={medication.user_id} kind={medication.kind}")
        self.scheduler.arm(medication)
        return medication

    def update_medication(self, medication_id: int, user_id: int, data: MedicationUpdate) -> Medication:
        medication = self._get_owned(medication_id, user_id)

        changes = _enum_values(data.model_dump(exclude_unset=True))
        # Switching to daily drops the weekday unless the caller set one explicitly
        if changes.get("frequency") == Frequency.DAILY.value and "day_of_week" not in changes:
            changes["day_of_week"] = None

        merged = {column: getattr(medication, column) for column in ("kind", *_ONE_TIME_FIELDS, *_RECURRING_FIELDS)}
        merged.update(changes)
        validate_schedule(merged)

        medication_crud.patch_medication(self.db, medication.id, changes)
        self.db.refresh(medication)
        logger.info(f"[Medications] Updated medication={medication.id} fields={sorted(changes)}")
        self.scheduler.arm(medication)
        return medication

    def delete_medication(self, medication_id: int, user_id: int) -> None:
        medication = self._get_owned(medication_id, user_id)
        # Armed jobs are not retracted; they find the row gone and do nothing
        medication_crud.delete_medication(self.db, medication)
        logger.info(f"[Medications] Deleted medication={medication_id}")

    def mark_taken(self, medication_id: int, user_id: int, notes: Optional[str] = None) -> MedicationLog:
        medication = self._get_owned(medication_id, user_id)
        now = self._now()

        log = log_crud.append_log(
            self.db,
            medication_id=medication.id,
            user_id=user_id,
            taken_at=now,
            was_on_time=True,
            notes=notes,
        )
        if medication.kind == MedicationKind.ONE_TIME.value:
            medication.is_completed = True
        medication.last_taken_at = now
        self.db.commit()
        self.db.refresh(log)
        logger.info(f"[Medications] Marked medication={medication.id} taken at {now.isoformat()}")
        return log

    def list_medications(self, user_id: int) -> List[MedicationRead]:
        now = self._now()
        result = []
        for medication in medication_crud.list_medications_for_user(self.db, user_id):
            read = MedicationRead.model_validate(medication)
            read.needs_taking_today = needs_taking_today(medication, now)
            result.append(read)
        return result

    def list_medication_logs(
        self,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MedicationLogRead]:
        result = []
        for log, medication in log_crud.list_logs_with_medication(self.db, user_id, start=start, end=end):
            read = MedicationLogRead.model_validate(log)
            if medication is not None:
                read.medication_name = medication.name
                read.medication_description = medication.description
            result.append(read)
        return result

    def _get_owned(self, medication_id: int, user_id: int) -> Medication:
        medication = medication_crud.get_medication(self.db, medication_id)
        if medication is None:
            raise errors.NotFoundError("Medication", medication_id)
        if medication.user_id != user_id:
            raise errors.UnauthorizedError(f"Medication {medication_id} does not belong to user {user_id}")
        return medication
