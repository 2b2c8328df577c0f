from datetime import date, datetime

import pytest

from medreminder.crud import delivery as delivery_crud
from medreminder.crud.medication import create_medication
from medreminder.models.medication import Medication
from medreminder.reminders.dispatcher import NotificationDispatcher
from medreminder.reminders.jobs import FIRE_REMINDER_TASK
from medreminder.reminders.reconcile import reconcile_schedules
from medreminder.reminders.scheduler import ReminderScheduler
from medreminder.reminders.service import MedicationService
from medreminder.schemas.medication import MedicationCreate


def daily_fields(user_id, **overrides):
    fields = {
        "user_id": user_id,
        "name": "Metformin",
        "kind": "recurring",
        "frequency": "daily",
        "start_date": date(2026, 10, 19),
        "end_date": date(2026, 10, 31),
        "reminder_times": ["08:00"],
        "is_completed": False,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def service(db, jobs, clock):
    return MedicationService(db, jobs, now_fn=clock)


def armed_daily(service, user_id):
    fields = daily_fields(user_id)
    fields.pop("is_completed")
    return service.create_medication(MedicationCreate(**fields))


def test_never_armed_medication_is_armed(db, jobs, clock, user):
    medication = create_medication(db, daily_fields(user.id))
    assert medication.schedule_generation == 0

    assert reconcile_schedules(db, jobs, now_fn=clock, grace_seconds=600) == 1

    db.refresh(medication)
    assert medication.schedule_generation == 1
    assert medication.next_fire_at == datetime(2026, 10, 21, 8, 0)
    [job] = jobs.named(FIRE_REMINDER_TASK)
    assert job.run_at == datetime(2026, 10, 21, 8, 0)


def test_lost_job_is_fired_late_and_rearmed(db, jobs, clock, service, user):
    medication = armed_daily(service, user.id)
    original_job = jobs.named(FIRE_REMINDER_TASK)[0]

    clock.set(datetime(2026, 10, 21, 9, 0))
    assert reconcile_schedules(db, jobs, now_fn=clock, grace_seconds=600) == 1

    db.refresh(medication)
    assert medication.last_notified_at == datetime(2026, 10, 21, 9, 0)
    assert medication.next_fire_at == datetime(2026, 10, 22, 8, 0)
    assert len(delivery_crud.list_for_user(db, user.id)) == 1

    # The original job turning up afterwards is stale
    dispatcher = NotificationDispatcher(db, ReminderScheduler(db, jobs, now_fn=clock), now_fn=clock)
    payload = original_job.payload
    assert not dispatcher.on_fire(
        payload["medication_id"], payload["generation"], datetime.fromisoformat(payload["fire_at"])
    )
    assert len(delivery_crud.list_for_user(db, user.id)) == 1


def test_job_within_grace_is_left_alone(db, jobs, clock, service, user):
    armed_daily(service, user.id)
    clock.set(datetime(2026, 10, 21, 8, 5))

    assert reconcile_schedules(db, jobs, now_fn=clock, grace_seconds=600) == 0
    assert len(jobs.named(FIRE_REMINDER_TASK)) == 1


def test_healthy_and_finished_medications_are_untouched(db, jobs, clock, service, user):
    armed_daily(service, user.id)
    create_medication(db, {
        "user_id": user.id, "name": "Done", "kind": "one_time",
        "reminder_date": date(2026, 10, 1), "reminder_time": "08:00", "is_completed": True,
    })
    create_medication(db, daily_fields(user.id, name="Old course", start_date=date(2026, 9, 1), end_date=date(2026, 9, 30)))

    assert reconcile_schedules(db, jobs, now_fn=clock, grace_seconds=600) == 0
    assert len(jobs.named(FIRE_REMINDER_TASK)) == 1


def test_one_bad_medication_does_not_stop_the_sweep(db, jobs, clock, user, monkeypatch):
    first = create_medication(db, daily_fields(user.id, name="First"))
    second = create_medication(db, daily_fields(user.id, name="Second"))

    original_arm = ReminderScheduler.arm

    def flaky_arm(self, medication):
        if medication.id == first.id:
            raise RuntimeError("broker unavailable")
        return original_arm(self, medication)

    monkeypatch.setattr(ReminderScheduler, "arm", flaky_arm)

    assert reconcile_schedules(db, jobs, now_fn=clock, grace_seconds=600) == 1
    assert db.get(Medication, second.id).schedule_generation == 1
    assert db.get(Medication, first.id).schedule_generation == 0
