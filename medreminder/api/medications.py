from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from medreminder.reminders.jobs import JobScheduler
from medreminder.reminders.service import MedicationService, needs_taking_today
from medreminder.schemas.medication import (
    MedicationCreate, MedicationUpdate, MedicationRead, MarkTaken, MedicationLogRead,
)
from medreminder.utils.timemath import now_local
from .deps import get_db, get_job_scheduler, verify_api_key_dependency


router = APIRouter(dependencies=[Depends(verify_api_key_dependency)])


def _read(medication) -> MedicationRead:
    read = MedicationRead.model_validate(medication)
    read.needs_taking_today = needs_taking_today(medication, now_local())
    return read


@router.post("/", response_model=MedicationRead, status_code=201)
def create_medication_endpoint(
    payload: MedicationCreate,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return _read(MedicationService(db, jobs).create_medication(payload))


@router.get("/", response_model=List[MedicationRead])
def list_medications_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return MedicationService(db, jobs).list_medications(user_id)


@router.get("/logs", response_model=List[MedicationLogRead])
def list_medication_logs_endpoint(
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return MedicationService(db, jobs).list_medication_logs(user_id, start=start, end=end)


@router.patch("/{medication_id}", response_model=MedicationRead)
def update_medication_endpoint(
    medication_id: int,
    user_id: int,
    payload: MedicationUpdate,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    return _read(MedicationService(db, jobs).update_medication(medication_id, user_id, payload))


@router.delete("/{medication_id}", status_code=204)
def delete_medication_endpoint(
    medication_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    MedicationService(db, jobs).delete_medication(medication_id, user_id)
    return Response(status_code=204)


@router.post("/{medication_id}/taken", response_model=MedicationLogRead)
def mark_taken_endpoint(
    medication_id: int,
    payload: MarkTaken,
    db: Session = Depends(get_db),
    jobs: JobScheduler = Depends(get_job_scheduler),
):
    log = MedicationService(db, jobs).mark_taken(medication_id, payload.user_id, notes=payload.notes)
    return MedicationLogRead.model_validate(log)
