from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from academy.api.v1.endpoints import students as students_endpoint
from academy.main import app
from academy.services import lessons as lesson_service
from academy.services.ledger import InvalidLedgerEventError
from academy.services.wallet import ConcurrentUpdateError

API = "/api/v1"


@contextmanager
def _client():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(db):
    with _client() as client:
        yield client


def _teacher(client, name="Amina", rate="60"):
    res = client.post(f"{API}/teachers", json={"name": name, "rate_per_lesson": rate})
    assert res.status_code == 201
    return res.json()


def _student(client, teacher_id=None, name="Lina"):
    res = client.post(f"{API}/students", json={"name": name, "phone": "0500000000", "teacher_id": teacher_id})
    assert res.status_code == 201
    return res.json()


def _buy(client, student_id, teacher_id, lessons=4):
    res = client.post(
        f"{API}/students/{student_id}/packages",
        json={
            "amount": "400",
            "lessons_purchased": lessons,
            "start_date": "2026-03-02",
            "teacher_id": teacher_id,
            "weekly_schedule": [
                {"day_of_week": 0, "time_slot": "17:00"},
                {"day_of_week": 3, "time_slot": "17:00"},
            ],
        },
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_health_endpoints(client):
    assert client.get("/healthz").json()["status"] == "ok"
    res = client.get("/readyz")
    assert res.status_code == 200
    assert res.json()["status"] == "ready"


def test_package_purchase_and_lesson_flow(client):
    teacher = _teacher(client)
    student = _student(client, teacher["id"])
    assert student["status"] == "Grace"
    assert student["wallet_balance"] == 0

    purchase = _buy(client, student["id"], teacher["id"])
    assert purchase["old_wallet"] == 0
    assert purchase["new_wallet"] == 4
    assert purchase["status"] == "Active"
    assert [l["scheduled_date"] for l in purchase["lessons"]] == [
        "2026-03-04",
        "2026-03-08",
        "2026-03-11",
        "2026-03-15",
    ]

    lesson_id = purchase["lessons"][0]["id"]
    res = client.post(f"{API}/lessons/{lesson_id}/mark", json={"status": "completed"})
    assert res.status_code == 200
    assert res.json()["status"] == "completed"
    assert res.json()["charged_to"] == "wallet"

    student = client.get(f"{API}/students/{student['id']}").json()
    assert (student["wallet_balance"], student["debt_lessons"], student["status"]) == (3, 0, "Active")

    ledger = client.get(f"{API}/students/{student['id']}/ledger").json()
    assert [e["event"] for e in ledger] == ["lesson_completed", "package_added"]
    assert ledger[0]["status_after"] == "Active"

    res = client.post(f"{API}/lessons/{lesson_id}/mark", json={"status": "absent"})
    assert res.status_code == 409


def test_lesson_conflicts_are_reported_and_enforced(client):
    teacher = _teacher(client)
    student = _student(client, teacher["id"])
    other = _student(client, teacher["id"], name="Omar")
    purchase = _buy(client, student["id"], teacher["id"], lessons=2)
    taken = purchase["lessons"][0]

    res = client.post(
        f"{API}/lessons/conflicts",
        json={"teacher_id": teacher["id"], "scheduled_date": taken["scheduled_date"], "scheduled_time": "17:00"},
    )
    assert res.json()["has_conflict"] is True
    assert [c["id"] for c in res.json()["conflicts"]] == [taken["id"]]

    res = client.post(
        f"{API}/lessons",
        json={"student_id": other["id"], "scheduled_date": taken["scheduled_date"], "scheduled_time": "17:00"},
    )
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "LESSON_SLOT_CONFLICT"

    res = client.post(
        f"{API}/lessons",
        json={"student_id": other["id"], "scheduled_date": taken["scheduled_date"], "scheduled_time": "18:00"},
    )
    assert res.status_code == 201
    assert res.json()["teacher_id"] == teacher["id"]


def test_reschedule_patch_and_delete(client):
    teacher = _teacher(client)
    student = _student(client, teacher["id"])
    purchase = _buy(client, student["id"], teacher["id"], lessons=2)
    first, second = purchase["lessons"]

    res = client.post(f"{API}/lessons/{first['id']}/reschedule", json={"new_date": "2026-03-05", "new_time": "09:30"})
    assert res.status_code == 200
    assert (res.json()["scheduled_date"], res.json()["scheduled_time"]) == ("2026-03-05", "09:30:00")

    res = client.patch(f"{API}/lessons/{first['id']}", json={"status": "completed"})
    assert res.status_code == 200
    assert res.json()["charged_to"] == "wallet"

    res = client.delete(f"{API}/lessons/{first['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["event"] == "completed_lesson_deleted"
    assert (body["wallet_balance"], body["debt_lessons"], body["status"]) == (2, 0, "Grace")

    res = client.delete(f"{API}/lessons/{second['id']}")
    assert res.json()["event"] == "scheduled_lesson_deleted"
    assert res.json()["wallet_balance"] == 1

    assert client.get(f"{API}/lessons/{first['id']}").status_code == 404
    assert client.get(f"{API}/lessons", params={"student_id": student["id"]}).json() == []


def test_free_lessons_endpoint(client):
    student = _student(client)

    res = client.post(f"{API}/students/{student['id']}/free-lessons", json={"lessons": 3, "reason": "Referral"})
    assert res.status_code == 200
    assert res.json() == {
        "student_id": student["id"],
        "wallet_balance": 3,
        "debt_lessons": 0,
        "status": "Active",
        "charged_to": None,
        "debt_covered": 0,
    }

    assert client.post(f"{API}/students/{student['id']}/free-lessons", json={"lessons": 0, "reason": "x"}).status_code == 422
    assert client.post(f"{API}/students/{student['id']}/free-lessons", json={"lessons": 1}).status_code == 422
    assert client.post(f"{API}/students/999/free-lessons", json={"lessons": 1, "reason": "x"}).status_code == 404


def test_mark_rejects_unknown_status(client):
    student = _student(client)
    lesson = client.post(
        f"{API}/lessons",
        json={"student_id": student["id"], "scheduled_date": "2026-03-02", "scheduled_time": "17:00"},
    ).json()

    res = client.post(f"{API}/lessons/{lesson['id']}/mark", json={"status": "scheduled"})
    assert res.status_code == 422


def test_student_listing_filters_by_status(client):
    _student(client, name="Lina")
    funded = _student(client, name="Omar")
    client.post(f"{API}/students/{funded['id']}/free-lessons", json={"lessons": 5, "reason": "Promo"})

    res = client.get(f"{API}/students", params={"status": "active"})
    assert [s["name"] for s in res.json()] == ["Omar"]
    res = client.get(f"{API}/students", params={"status": "GRACE"})
    assert [s["name"] for s in res.json()] == ["Lina"]
    assert client.get(f"{API}/students", params={"status": "frozen"}).status_code == 400


def test_reports(client):
    teacher = _teacher(client, rate="60")
    student = _student(client, teacher["id"])
    purchase = _buy(client, student["id"], teacher["id"], lessons=2)
    for lesson in purchase["lessons"]:
        client.post(f"{API}/lessons/{lesson['id']}/mark", json={"status": "completed"})

    res = client.get(f"{API}/reports/payroll", params={"from": "2026-03-01", "to": "2026-03-31"})
    assert res.status_code == 200
    report = res.json()
    assert report["items"][0]["lessons_taken"] == 2
    assert report["items"][0]["total_minutes"] == 90
    assert report["total_due"] == "90.00"

    assert client.get(f"{API}/reports/payroll", params={"from": "2026-03-31", "to": "2026-03-01"}).status_code == 400

    summary = client.get(f"{API}/reports/student-status").json()
    assert summary["counts"] == {"Active": 0, "Grace": 1, "Blocked": 0}
    assert [s["id"] for s in summary["low_balance"]] == [student["id"]]


def test_concurrent_update_is_reported_as_retryable_conflict(client, monkeypatch):
    def _busy(*args, **kwargs):
        raise ConcurrentUpdateError(7, 3)

    monkeypatch.setattr(lesson_service, "mark_lesson", _busy)

    res = client.post(f"{API}/lessons/1/mark", json={"status": "completed"})

    assert res.status_code == 409
    assert res.json()["retryable"] is True


def test_invalid_ledger_event_maps_to_bad_request(client, monkeypatch):
    student = _student(client)

    def _invalid(*args, **kwargs):
        raise InvalidLedgerEventError("Lesson count must be at least 1")

    monkeypatch.setattr(students_endpoint, "grant_free_lessons", _invalid)

    res = client.post(f"{API}/students/{student['id']}/free-lessons", json={"lessons": 1, "reason": "x"})

    assert res.status_code == 400
    assert res.json()["detail"] == "Lesson count must be at least 1"
