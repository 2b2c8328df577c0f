from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from medreminder.reminders.jobs import JobScheduler
from medreminder.reports.pipeline import ReportPipeline
from medreminder.schemas.report import ReportRequest, ReportRequested, ReportRead
from .deps import get_db, get_job_scheduler, verify_api_key_dependency


router = APIRouter(dependencies=[Depends(verify_api_key_dependency)])


@router.post("/", response_model=ReportRequested, status_code=202)
def request_report_endpoint(
    payload: ReportRequest,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    report = ReportPipeline(db, jobs).request(
        payload.user_id, payload.report_type, start=payload.start_date, end=payload.end_date
    )
    return ReportRequested(report_id=report.id, status=report.status)


@router.get("/", response_model=List[ReportRead])
def list_reports_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return ReportPipeline(db, jobs).list_reports(user_id)


@router.get("/{report_id}", response_model=ReportRead)
def get_report_endpoint(
    report_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return ReportPipeline(db, jobs).get_report(report_id, user_id)
