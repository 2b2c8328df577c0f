"""
Medication request/response schemas
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from medreminder.models.medication import MedicationKind, Frequency, DayOfWeek


class MedicationCreate(BaseModel):
    """Schema for creating a one-time or recurring medication"""
    user_id: int
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    kind: MedicationKind

    # One-time fields
    reminder_date: Optional[date] = None
    reminder_time: Optional[str] = None  # HH:MM

    # Recurring fields
    frequency: Optional[Frequency] = None
    day_of_week: Optional[DayOfWeek] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reminder_times: Optional[List[str]] = None


class MedicationUpdate(BaseModel):
    """The fields an edit may change. Kind and owner are fixed at creation."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    reminder_date: Optional[date] = None
    reminder_time: Optional[str] = None
    frequency: Optional[Frequency] = None
    day_of_week: Optional[DayOfWeek] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reminder_times: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        # Omitting name leaves it unchanged; null is never a valid name
        if v is None:
            raise ValueError("name cannot be null")
        return v


class MedicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    kind: MedicationKind
    reminder_date: Optional[date] = None
    reminder_time: Optional[str] = None
    is_completed: bool
    frequency: Optional[Frequency] = None
    day_of_week: Optional[DayOfWeek] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reminder_times: Optional[List[str]] = None
    last_taken_at: Optional[datetime] = None
    last_notified_at: Optional[datetime] = None
    next_fire_at: Optional[datetime] = None
    needs_taking_today: bool = True


class MarkTaken(BaseModel):
    user_id: int
    notes: Optional[str] = None


class MedicationLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    user_id: int
    taken_at: datetime
    was_on_time: bool
    notes: Optional[str] = None
    medication_name: Optional[str] = None
    medication_description: Optional[str] = None
