from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from medreminder.models.report import ReportType, ReportStatus


class ReportRequest(BaseModel):
    user_id: int
    report_type: ReportType
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ReportRequested(BaseModel):
    """Returned when a report has been queued for generation"""
    report_id: int
    status: ReportStatus


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    report_type: ReportType
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: ReportStatus
    report_url: Optional[str] = None
    generated_at: datetime
    completed_at: Optional[datetime] = None
