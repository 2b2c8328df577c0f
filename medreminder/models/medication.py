"""
Medication and medication log models.

All instants are naive local timestamps; calendar days are stored as dates.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, JSON, ForeignKey, Index

from medreminder.db.base import Base


class MedicationKind(str, Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class DayOfWeek(str, Enum):
    """Days of the week, ordered to match datetime.weekday()"""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        return list(DayOfWeek).index(self)


class Medication(Base):
    """A medication with a one-time or recurring reminder schedule"""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    kind = Column(String, nullable=False)  # one_time, recurring

    # One-time schedule
    reminder_date = Column(Date, nullable=True)
    reminder_time = Column(String(5), nullable=True)  # HH:MM
    is_completed = Column(Boolean, nullable=False, default=False)

    # Recurring schedule (inclusive day range)
    frequency = Column(String, nullable=True)  # daily, weekly
    day_of_week = Column(String, nullable=True)  # required iff weekly
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    reminder_times = Column(JSON, nullable=True)  # list of HH:MM, first entry is used

    last_taken_at = Column(DateTime, nullable=True)
    last_notified_at = Column(DateTime, nullable=True)

    # Scheduler bookkeeping
    schedule_generation = Column(Integer, nullable=False, default=0)  # bumped on every arm
    next_fire_at = Column(DateTime, nullable=True)  # instant of the current armed job

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    __table_args__ = (
        Index("ix_medications_kind_completed", "kind", "is_completed"),
        Index("ix_medications_next_fire_at", "next_fire_at"),
    )

    @property
    def is_recurring(self) -> bool:
        return self.kind == MedicationKind.RECURRING.value


class MedicationLog(Base):
    """Append-only record of a dose being taken"""
    __tablename__ = "medication_logs"

    id = Column(Integer, primary_key=True, index=True)
    # No FK: logs outlive deleted medications and are never rewritten
    medication_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    taken_at = Column(DateTime, nullable=False)
    was_on_time = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_medication_logs_user_taken", "user_id", "taken_at"),
    )
