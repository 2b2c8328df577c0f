from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from medreminder.api.deps import get_db, get_job_scheduler
from medreminder.main import app
from medreminder.reminders.jobs import FIRE_REMINDER_TASK, GENERATE_REPORT_TASK

API = "/api/v1"


@pytest.fixture
def client(db, jobs):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_scheduler] = lambda: jobs
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def one_time_payload(user_id):
    return {
        "user_id": user_id,
        "name": "Amoxicillin",
        "description": "500mg",
        "kind": "one_time",
        "reminder_date": (date.today() + timedelta(days=2)).isoformat(),
        "reminder_time": "08:00",
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_medication_arms_reminder(client, user, jobs):
    response = client.post(f"{API}/medications/", json=one_time_payload(user.id))

    assert response.status_code == 201
    body = response.json()
    assert body["kind"] == "one_time"
    assert body["is_completed"] is False
    assert body["needs_taking_today"] is True
    assert body["next_fire_at"].endswith("08:00:00")
    [job] = jobs.named(FIRE_REMINDER_TASK)
    assert job.payload["medication_id"] == body["id"]


def test_invalid_schedule_is_rejected(client, user, jobs):
    payload = {
        "user_id": user.id,
        "name": "Vitamin D",
        "kind": "recurring",
        "frequency": "weekly",
        "start_date": date.today().isoformat(),
        "end_date": (date.today() + timedelta(days=30)).isoformat(),
    }

    response = client.post(f"{API}/medications/", json=payload)

    assert response.status_code == 422
    assert response.json()["detail"] == "Weekly medication requires day of week"
    assert jobs.jobs == []


def test_edit_and_delete_require_ownership(client, user, other_user):
    medication_id = client.post(f"{API}/medications/", json=one_time_payload(user.id)).json()["id"]

    response = client.patch(f"{API}/medications/{medication_id}", params={"user_id": other_user.id}, json={"name": "x"})
    assert response.status_code == 403

    response = client.delete(f"{API}/medications/{medication_id}", params={"user_id": other_user.id})
    assert response.status_code == 403

    response = client.delete(f"{API}/medications/{medication_id}", params={"user_id": user.id})
    assert response.status_code == 204

    response = client.delete(f"{API}/medications/{medication_id}", params={"user_id": user.id})
    assert response.status_code == 404


def test_edit_rejects_null_name(client, user):
    medication_id = client.post(f"{API}/medications/", json=one_time_payload(user.id)).json()["id"]

    response = client.patch(f"{API}/medications/{medication_id}", params={"user_id": user.id}, json={"name": None})
    assert response.status_code == 422

    [listed] = client.get(f"{API}/medications/", params={"user_id": user.id}).json()
    assert listed["name"] == "Amoxicillin"


def test_edit_rearms_with_new_time(client, user, jobs):
    medication_id = client.post(f"{API}/medications/", json=one_time_payload(user.id)).json()["id"]

    response = client.patch(
        f"{API}/medications/{medication_id}", params={"user_id": user.id}, json={"reminder_time": "21:30"}
    )

    assert response.status_code == 200
    assert response.json()["reminder_time"] == "21:30"
    first, second = jobs.named(FIRE_REMINDER_TASK)
    assert second.payload["generation"] == first.payload["generation"] + 1
    assert second.run_at.hour == 21


def test_mark_taken_and_list(client, user):
    medication_id = client.post(f"{API}/medications/", json=one_time_payload(user.id)).json()["id"]

    response = client.post(f"{API}/medications/{medication_id}/taken", json={"user_id": user.id, "notes": "after lunch"})
    assert response.status_code == 200
    assert response.json()["notes"] == "after lunch"

    [listed] = client.get(f"{API}/medications/", params={"user_id": user.id}).json()
    assert listed["is_completed"] is True
    assert listed["needs_taking_today"] is False

    [log] = client.get(f"{API}/medications/logs", params={"user_id": user.id}).json()
    assert log["medication_name"] == "Amoxicillin"
    assert log["was_on_time"] is True


def test_request_and_read_report(client, user, other_user, jobs):
    response = client.post(f"{API}/reports/", json={"user_id": user.id, "report_type": "weekly"})

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "pending"
    [job] = jobs.named(GENERATE_REPORT_TASK)
    assert job.payload == {"report_id": body["report_id"]}

    response = client.get(f"{API}/reports/{body['report_id']}", params={"user_id": user.id})
    assert response.status_code == 200
    assert response.json()["report_type"] == "weekly"

    response = client.get(f"{API}/reports/{body['report_id']}", params={"user_id": other_user.id})
    assert response.status_code == 403

    assert client.get(f"{API}/reports/999", params={"user_id": user.id}).status_code == 404
    assert len(client.get(f"{API}/reports/", params={"user_id": user.id}).json()) == 1


def test_custom_report_with_inverted_window(client, user):
    response = client.post(
        f"{API}/reports/",
        json={
            "user_id": user.id,
            "report_type": "custom",
            "start_date": "2026-10-10T00:00:00",
            "end_date": "2026-10-01T00:00:00",
        },
    )
    assert response.status_code == 422
