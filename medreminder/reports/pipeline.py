"""
Report request and generation.

A request inserts a Pending report and queues a generate job immediately.
Generation claims the report by moving it Pending -> Processing, so a
duplicate delivery of the job finds nothing to claim and exits. Any failure
after the claim is terminal: the report is set to Failed and nothing retries.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
import html
import logging

from sqlalchemy.orm import Session

from medreminder.core import errors
from medreminder.crud import report as report_crud
from medreminder.crud.medication_log import list_logs_with_medication
from medreminder.crud.user import get_user, list_users
from medreminder.delivery.queue import enqueue_message
from medreminder.models.report import Report, ReportStatus, ReportType
from medreminder.reminders.jobs import JobScheduler, GENERATE_REPORT_TASK, DRAIN_DELIVERY_TASK
from medreminder.reminders.metrics import reports_completed_total, reports_failed_total
from medreminder.services.blob_store import BlobStore
from medreminder.utils.timemath import format_locale_date, now_local
from .export import project_rows, render_csv

logger = logging.getLogger(__name__)

WEEKLY_WINDOW = timedelta(days=7)
CUSTOM_DEFAULT_WINDOW = timedelta(days=30)


def effective_window(
    report_type: str,
    start: Optional[datetime],
    end: Optional[datetime],
    now: datetime,
) -> Tuple[datetime, datetime]:
    """Resolve the inclusive ``[start, end]`` aggregation window after defaults."""
    if report_type == ReportType.WEEKLY.value:
        return now - WEEKLY_WINDOW, now
    effective_end = end or now
    effective_start = start or now - CUSTOM_DEFAULT_WINDOW
    return effective_start, effective_end


def _report_email(report_type: str, user_name: str, url: str, start: datetime, end: datetime) -> Tuple[str, str]:
    label = "Weekly" if report_type == ReportType.WEEKLY.value else "Custom"
    subject = f"Your {label} Medication Report"
    body = (
        f"<h1>{label} Medication Report</h1>"
        f"<p>Hello {html.escape(user_name)},</p>"
        f"<p>Your {label.lower()} medication report is ready. You can download it from the app or click the link below:</p>"
        f'<p><a href="{html.escape(url)}">Download Report</a></p>'
        f"<p>This report covers the period from {format_locale_date(start)} to {format_locale_date(end)}.</p>"
    )
    return subject, body


class ReportPipeline:
    def __init__(
        self,
        db: Session,
        jobs: JobScheduler,
        blob_store: Optional[BlobStore] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.jobs = jobs
        self.blob_store = blob_store
        self._now = now_fn or now_local

    def request(
        self,
        user_id: int,
        report_type: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Report:
        """Insert a Pending report and queue its generation. Returns the report."""
        report_type = getattr(report_type, "value", report_type)
        if report_type not in (ReportType.WEEKLY.value, ReportType.CUSTOM.value):
            raise errors.ValidationError(f"Unknown report type {report_type!r}")
        if report_type == ReportType.WEEKLY.value:
            start = end = None
        elif start is not None and end is not None and start > end:
            raise errors.ValidationError("Report start must not be after its end")

        report = report_crud.create_report(
            self.db,
            user_id=user_id,
            report_type=report_type,
            start_date=start,
            end_date=end,
            generated_at=self._now(),
        )
        self.jobs.run_after(0, GENERATE_REPORT_TASK, {"report_id": report.id})
        logger.info(f"[Reports] Requested report={report.id} user={user_id} type={report_type}")
        return report

    def generate(self, report_id: int) -> Optional[Report]:
        """Run the aggregation for a Pending report. Returns None if it was already claimed."""
        claimed = report_crud.transition_status(
            self.db, report_id, from_statuses=[ReportStatus.PENDING], to_status=ReportStatus.PROCESSING
        )
        if not claimed:
            logger.info(f"[Reports] Report={report_id} missing or already claimed, skipping")
            return None

        report = report_crud.get_report(self.db, report_id)
        self.db.refresh(report)
        try:
            self._generate(report)
        except Exception as e:
            self.db.rollback()
            report_crud.transition_status(
                self.db,
                report_id,
                from_statuses=[ReportStatus.PROCESSING],
                to_status=ReportStatus.FAILED,
                error=str(e),
            )
            reports_failed_total.inc()
            logger.error(f"[Reports] Error generating report={report_id}: {e!r}")
            self.db.refresh(report)
            return report

        self.db.refresh(report)
        try:
            self.jobs.run_after(0, DRAIN_DELIVERY_TASK, {})
        except Exception as e:
            # The periodic drain still sends the message
            logger.warning(f"[Reports] Could not queue delivery drain after report={report_id}: {e!r}")
        return report

    def _generate(self, report: Report) -> None:
        if self.blob_store is None:
            raise errors.StorageError("No blob store configured for report exports")

        user = get_user(self.db, report.user_id)
        if user is None:
            raise errors.NotFoundError("User", report.user_id)

        now = self._now()
        start, end = effective_window(report.report_type, report.start_date, report.end_date, now)
        pairs = list_logs_with_medication(self.db, user.id, start=start, end=end)
        data = render_csv(project_rows(pairs))

        blob_id = self.blob_store.store(data, "text/csv")
        url = self.blob_store.get_url(blob_id)

        # Completion and the delivery message commit together
        report.status = ReportStatus.COMPLETED.value
        report.report_url = url
        report.completed_at = now
        subject, body = _report_email(report.report_type, user.name, url, start, end)
        enqueue_message(self.db, user, subject=subject, body=body, attachments=[url], created_at=now, commit=False)
        self.db.commit()

        reports_completed_total.inc()
        logger.info(f"[Reports] Completed report={report.id} rows={len(pairs)} url={url}")

    def request_weekly_for_all_users(self) -> List[Report]:
        """Queue a weekly report for every user, with a notice that it is on its way."""
        reports = []
        for user in list_users(self.db):
            enqueue_message(
                self.db,
                user,
                subject="Your Weekly Medication Report",
                body="Your weekly medication report is being generated and will be sent to you shortly.",
                created_at=self._now(),
            )
            reports.append(self.request(user.id, ReportType.WEEKLY.value))
        logger.info(f"[Reports] Weekly fan-out queued {len(reports)} report(s)")
        return reports

    def list_reports(self, user_id: int) -> List[Report]:
        return report_crud.list_reports_for_user(self.db, user_id)

    def get_report(self, report_id: int, user_id: int) -> Report:
        report = report_crud.get_report(self.db, report_id)
        if report is None:
            raise errors.NotFoundError("Report", report_id)
        if report.user_id != user_id:
            raise errors.UnauthorizedError(f"Report {report_id} does not belong to user {user_id}")
        return report
