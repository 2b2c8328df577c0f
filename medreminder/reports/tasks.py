from celery import shared_task

from medreminder.db.session import session_scope
from medreminder.reminders.jobs import CeleryJobScheduler
from medreminder.services.blob_store import get_blob_store
from .pipeline import ReportPipeline


@shared_task(name="reports.generate")
def generate_report_task(report_id: int) -> str:
    """Generate one report. Returns its final status, or "skipped" if already claimed."""
    with session_scope() as db:
        pipeline = ReportPipeline(db, CeleryJobScheduler(), blob_store=get_blob_store())
        report = pipeline.generate(report_id)
        return report.status if report is not None else "skipped"


@shared_task(name="reports.weekly_fanout")
def weekly_fanout_task() -> int:
    """Request a weekly report for every user. Returns the number requested."""
    with session_scope() as db:
        reports = ReportPipeline(db, CeleryJobScheduler()).request_weekly_for_all_users()
        return len(reports)
