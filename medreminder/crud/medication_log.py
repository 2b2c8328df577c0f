from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select

from medreminder.models.medication import Medication, MedicationLog


def append_log(
    db: Session,
    medication_id: int,
    user_id: int,
    taken_at: datetime,
    was_on_time: bool = True,
    notes: Optional[str] = None,
) -> MedicationLog:
    """Add a log row to the session; the caller commits."""
    log = MedicationLog(
        medication_id=medication_id,
        user_id=user_id,
        taken_at=taken_at,
        was_on_time=was_on_time,
        notes=notes,
    )
    db.add(log)
    return log


def list_logs_with_medication(
    db: Session,
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Tuple[MedicationLog, Optional[Medication]]]:
    """Logs for a user within ``[start, end]`` (either bound optional), oldest first.

    Each log is paired with its medication, or None when the medication was deleted.
    """
    stmt = (
        select(MedicationLog, Medication)
        .outerjoin(Medication, Medication.id == MedicationLog.medication_id)
        .where(MedicationLog.user_id == user_id)
        .order_by(MedicationLog.taken_at.asc(), MedicationLog.id.asc())
    )
    if start is not None:
        stmt = stmt.where(MedicationLog.taken_at >= start)
    if end is not None:
        stmt = stmt.where(MedicationLog.taken_at <= end)
    return [(log, medication) for log, medication in db.execute(stmt).all()]
