from datetime import date, datetime, timedelta

import pytest

from medreminder.models.medication import Medication
from medreminder.reminders.jobs import FIRE_REMINDER_TASK
from medreminder.reminders.scheduler import NextFireCalculator, ReminderScheduler

# 2026-10-19 is a Monday
MONDAY = date(2026, 10, 19)


def one_time(**overrides):
    fields = dict(
        user_id=1, name="Amoxicillin", kind="one_time",
        reminder_date=date(2026, 10, 21), reminder_time="10:30", is_completed=False,
    )
    fields.update(overrides)
    return Medication(**fields)


def recurring(**overrides):
    fields = dict(
        user_id=1, name="Vitamin D", kind="recurring", frequency="daily",
        start_date=MONDAY, end_date=MONDAY + timedelta(days=28), reminder_times=["08:00"],
        is_completed=False,
    )
    fields.update(overrides)
    return Medication(**fields)


class TestOneTime:
    def test_future_reminder_is_composed_from_date_and_time(self):
        fire = NextFireCalculator.calculate(one_time(), datetime(2026, 10, 20, 9, 0))
        assert fire == datetime(2026, 10, 21, 10, 30)

    def test_past_reminder_is_not_armed(self):
        assert NextFireCalculator.calculate(one_time(), datetime(2026, 10, 21, 10, 30)) is None

    def test_completed_reminder_is_not_armed(self):
        assert NextFireCalculator.calculate(one_time(is_completed=True), datetime(2026, 10, 20, 9, 0)) is None


class TestRecurring:
    def test_daily_moves_to_tomorrow_when_todays_time_has_passed(self):
        fire = NextFireCalculator.calculate(recurring(), datetime(2026, 10, 20, 9, 0))
        assert fire == datetime(2026, 10, 21, 8, 0)

    def test_daily_fires_later_today(self):
        fire = NextFireCalculator.calculate(recurring(reminder_times=["20:00"]), datetime(2026, 10, 20, 9, 0))
        assert fire == datetime(2026, 10, 20, 20, 0)

    def test_weekly_armed_on_tuesday_waits_for_following_monday(self):
        med = recurring(frequency="weekly", day_of_week="monday")
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 20, 7, 0))
        assert fire == datetime(2026, 10, 26, 8, 0)

    def test_weekly_same_day_still_ahead_fires_today(self):
        med = recurring(frequency="weekly", day_of_week="monday")
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 19, 7, 0))
        assert fire == datetime(2026, 10, 19, 8, 0)

    def test_weekly_same_day_already_passed_goes_to_next_week(self):
        med = recurring(frequency="weekly", day_of_week="monday")
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 19, 8, 0))
        assert fire == datetime(2026, 10, 26, 8, 0)

    def test_start_date_in_future(self):
        med = recurring(start_date=date(2026, 10, 25), end_date=date(2026, 11, 25))
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 20, 9, 0))
        assert fire == datetime(2026, 10, 25, 8, 0)

    def test_end_date_is_inclusive(self):
        med = recurring(end_date=date(2026, 10, 21))
        assert NextFireCalculator.calculate(med, datetime(2026, 10, 20, 9, 0)) == datetime(2026, 10, 21, 8, 0)

    def test_exhausted_schedule_returns_none(self):
        med = recurring(end_date=date(2026, 10, 20))
        assert NextFireCalculator.calculate(med, datetime(2026, 10, 20, 9, 0)) is None

    def test_weekly_day_beyond_end_date_returns_none(self):
        med = recurring(frequency="weekly", day_of_week="friday", end_date=date(2026, 10, 22))
        assert NextFireCalculator.calculate(med, datetime(2026, 10, 20, 9, 0)) is None

    def test_never_rearms_at_or_before_last_notification(self):
        # Clock slightly behind the stored notification stamp
        med = recurring(last_notified_at=datetime(2026, 10, 20, 8, 0))
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 20, 7, 59))
        assert fire == datetime(2026, 10, 21, 8, 0)

    def test_old_last_notification_does_not_arm_in_the_past(self):
        med = recurring(last_notified_at=datetime(2026, 10, 10, 8, 0), start_date=date(2026, 10, 1))
        fire = NextFireCalculator.calculate(med, datetime(2026, 10, 20, 9, 0))
        assert fire == datetime(2026, 10, 21, 8, 0)

    def test_missing_reminder_time_uses_default(self):
        fire = NextFireCalculator.calculate(recurring(reminder_times=[]), datetime(2026, 10, 20, 7, 0))
        assert fire == datetime(2026, 10, 20, 8, 0)

    @pytest.mark.parametrize("day_of_week", ["monday", "wednesday", "sunday"])
    def test_weekly_fire_is_in_future_in_range_and_on_day(self, day_of_week):
        med = recurring(frequency="weekly", day_of_week=day_of_week)
        weekday = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"].index(day_of_week)
        now = datetime(2026, 10, 18, 0, 0)
        while now.date() <= med.end_date:
            fire = NextFireCalculator.calculate(med, now)
            if fire is not None:
                assert fire > now
                assert fire.date() <= med.end_date
                assert fire.weekday() == weekday
            now += timedelta(hours=7)


class TestArm:
    def test_arm_stamps_generation_and_fire_time_on_job(self, db, user, jobs, clock):
        med = recurring(user_id=user.id)
        db.add(med)
        db.commit()

        fire = ReminderScheduler(db, jobs, now_fn=clock).arm(med)

        assert fire == datetime(2026, 10, 21, 8, 0)
        assert med.schedule_generation == 1
        assert med.next_fire_at == fire
        [job] = jobs.jobs
        assert job.task_name == FIRE_REMINDER_TASK
        assert job.run_at == fire
        assert job.payload == {"medication_id": med.id, "generation": 1, "fire_at": fire.isoformat()}

    def test_arm_with_nothing_to_schedule_still_bumps_generation(self, db, user, jobs, clock):
        med = one_time(user_id=user.id, reminder_date=date(2026, 10, 1))
        db.add(med)
        db.commit()

        assert ReminderScheduler(db, jobs, now_fn=clock).arm(med) is None
        assert med.schedule_generation == 1
        assert med.next_fire_at is None
        assert jobs.jobs == []

    def test_rearming_increments_generation(self, db, user, jobs, clock):
        med = recurring(user_id=user.id)
        db.add(med)
        db.commit()
        scheduler = ReminderScheduler(db, jobs, now_fn=clock)

        scheduler.arm(med)
        scheduler.arm(med)

        assert [job.payload["generation"] for job in jobs.jobs] == [1, 2]
