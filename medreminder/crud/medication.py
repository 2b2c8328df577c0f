from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, update, and_, or_

from medreminder.models.medication import Medication, MedicationKind


def get_medication(db: Session, medication_id: int) -> Optional[Medication]:
    return db.get(Medication, medication_id)


def list_medications_for_user(db: Session, user_id: int) -> List[Medication]:
    stmt = select(Medication).where(Medication.user_id == user_id).order_by(Medication.id)
    return list(db.execute(stmt).scalars())


def create_medication(db: Session, fields: Dict[str, Any]) -> Medication:
    medication = Medication(**fields)
    db.add(medication)
    db.commit()
    db.refresh(medication)
    return medication


def patch_medication(db: Session, medication_id: int, values: Dict[str, Any]) -> None:
    if not values:
        return
    db.execute(
        update(Medication)
        .where(Medication.id == medication_id)
        .values(**values, updated_at=datetime.now())
    )
    db.commit()


def delete_medication(db: Session, medication: Medication) -> None:
    db.delete(medication)
    db.commit()


def stamp_notified(
    db: Session,
    medication_id: int,
    generation: int,
    notified_at: datetime,
    not_since: datetime,
) -> bool:
    """Set ``last_notified_at`` if the medication is still owed this reminder.

    Matches only while the schedule generation is unchanged, a one-time
    medication is not completed, and no reminder was stamped at or after
    ``not_since``. Returns False when another firing got there first. Does not commit.
    """
    result = db.execute(
        update(Medication)
        .where(Medication.id == medication_id)
        .where(Medication.schedule_generation == generation)
        .where(
            or_(
                Medication.kind != MedicationKind.ONE_TIME.value,
                Medication.is_completed == False,  # noqa: E712
            )
        )
        .where(or_(Medication.last_notified_at.is_(None), Medication.last_notified_at < not_since))
        .values(last_notified_at=notified_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_needing_reconciliation(
    db: Session,
    overdue_before: datetime,
    today,
    limit: int = 500,
) -> List[Medication]:
    """Medications that were never armed, or whose armed job never fired.

    Exhausted recurring schedules and completed one-time medications are excluded.
    """
    never_armed = Medication.schedule_generation == 0
    job_lost = and_(
        Medication.next_fire_at.isnot(None),
        Medication.next_fire_at < overdue_before,
        or_(
            Medication.last_notified_at.is_(None),
            Medication.last_notified_at < Medication.next_fire_at,
        ),
    )
    still_live = or_(
        and_(Medication.kind == MedicationKind.ONE_TIME.value, Medication.is_completed == False),  # noqa: E712
        and_(Medication.kind == MedicationKind.RECURRING.value, Medication.end_date >= today),
    )
    stmt = (
        select(Medication)
        .where(or_(never_armed, job_lost))
        .where(still_live)
        .order_by(Medication.id)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())
