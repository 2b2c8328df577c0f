from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index

from medreminder.db.base import Base


class ReportType(str, Enum):
    WEEKLY = "weekly"
    CUSTOM = "custom"


class ReportStatus(str, Enum):
    """Pending -> Processing -> Completed | Failed"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Report(Base):
    """A requested medication usage export"""
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    report_type = Column(String, nullable=False)
    start_date = Column(DateTime, nullable=True)  # custom reports only
    end_date = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default=ReportStatus.PENDING.value)
    report_url = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    generated_at = Column(DateTime, default=datetime.now, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_reports_user_generated", "user_id", "generated_at"),
    )
