from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from sqlalchemy import select, update

from medreminder.models.report import Report, ReportStatus


def create_report(
    db: Session,
    user_id: int,
    report_type: str,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    generated_at: datetime,
) -> Report:
    report = Report(
        user_id=user_id,
        report_type=report_type,
        start_date=start_date,
        end_date=end_date,
        status=ReportStatus.PENDING.value,
        generated_at=generated_at,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def get_report(db: Session, report_id: int) -> Optional[Report]:
    return db.get(Report, report_id)


def list_reports_for_user(db: Session, user_id: int) -> List[Report]:
    stmt = (
        select(Report)
        .where(Report.user_id == user_id)
        .order_by(Report.generated_at.desc(), Report.id.desc())
    )
    return list(db.execute(stmt).scalars())


def transition_status(
    db: Session,
    report_id: int,
    from_statuses: Sequence[ReportStatus],
    to_status: ReportStatus,
    **values,
) -> bool:
    """Conditionally move a report to ``to_status``. Returns False when it was not in ``from_statuses``."""
    result = db.execute(
        update(Report)
        .where(Report.id == report_id)
        .where(Report.status.in_([s.value for s in from_statuses]))
        .values(status=to_status.value, **values)
    )
    db.commit()
    return result.rowcount == 1
