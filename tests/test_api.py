import asyncio

import pytest
from fastapi.testclient import TestClient

from rx_companion import main
from rx_companion.main import app
from rx_companion.services.adherence_store import SCHEDULE_SESSIONS, MAX_SESSIONS
from rx_companion.services.reminders import get_scheduler


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _create(client, name="Lisinopril", dosage="10mg", times=("08:00",), **kw):
    r = client.post("/medications", json={"name": name, "dosage": dosage, "times": list(times), **kw})
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_permissions_acquired_at_startup(client):
    assert client.get("/permissions").json() == {"permissions": {"notifications": "GRANTED"}}
    r = client.post("/permissions/notifications/retry")
    assert r.status_code == 200
    assert client.post("/permissions/camera/retry").status_code == 404


def test_extract(client):
    r = client.post("/medications/extract", json={"raw_text": "Vitamin D 1000 units\nonce a week"})
    assert r.json()["name"] == "Vitamin D"
    assert r.json()["frequency"] == "weekly"


def test_create_list_get_delete(client):
    saved = _create(client, times=("08:00", "20:00"))
    med = saved["medication"]
    assert saved["reminders"]["ok"] and saved["warnings"] == []
    assert med["id"].startswith("med_")

    assert [m["id"] for m in client.get("/medications").json()] == [med["id"]]
    assert client.get(f"/medications/{med['id']}").json() == med
    assert len(client.get("/reminders").json()) == 2

    assert client.delete(f"/medications/{med['id']}").status_code == 200
    assert client.get("/medications").json() == []
    assert client.get("/reminders").json() == []
    assert client.get(f"/medications/{med['id']}").status_code == 404
    assert client.delete(f"/medications/{med['id']}").status_code == 404


def test_create_rejects_empty_name(client):
    r = client.post("/medications", json={"name": "", "dosage": "10mg", "times": ["08:00"]})
    assert r.status_code == 422
    assert r.json()["detail"] == ["name is required"]
    assert client.get("/medications").json() == []


def test_intake_flow(client):
    r = client.post("/intake/start", json={"raw_text": "Metformin 500mg\ntwice daily\n8am and 8pm"})
    body = r.json()
    assert body["next_step"] == "NEED_REVIEW"
    assert body["draft"]["times"] == ["08:00", "20:00"]
    draft_id = body["draft_id"]

    r = client.post("/intake/review", json={"draft_id": draft_id, "action": "save", "edits": {"name": ""}})
    body = r.json()
    assert r.status_code == 200
    assert body["status"] == "REVIEW" and body["errors"] == ["name is required"]

    r = client.post("/intake/review", json={"draft_id": draft_id, "action": "save", "edits": {"name": "Metformin"}})
    body = r.json()
    assert body["status"] == "SAVED" and body["next_step"] == "DONE"
    assert body["medication"]["frequency"] == "twice-daily"

    # a finished draft no longer accepts review input
    r = client.post("/intake/review", json={"draft_id": draft_id, "action": "edit"})
    assert r.status_code == 409

    audit = client.get(f"/intake/{draft_id}/audit").json()["audit"]
    assert audit[-1]["event"] == "save.done"


def test_unknown_draft(client):
    assert client.get("/intake/draft_missing").status_code == 404
    assert client.post("/intake/review", json={"draft_id": "draft_missing"}).status_code == 404


def test_schedule_mark_and_summary(client):
    a = _create(client, name="Alpha", times=("08:00", "20:00"))["medication"]
    b = _create(client, name="Beta", times=("12:00",))["medication"]

    sched = client.get("/schedule/today").json()
    assert [(e["medication_id"], e["time"]) for e in sched["events"]] == [
        (a["id"], "08:00"), (b["id"], "12:00"), (a["id"], "20:00"),
    ]

    r = client.post("/schedule/mark", json={
        "session_id": sched["session_id"], "medication_id": a["id"], "time": "08:00",
    })
    assert [e["taken"] for e in r.json()["events"]] == [True, False, False]

    summary = client.get("/schedule/summary", params={"session_id": sched["session_id"]}).json()
    assert summary == {
        "session_id": sched["session_id"], "total": 3, "taken": 1, "pending": 2, "adherence_rate": 0.333,
    }

    # reopening the screen starts a fresh session
    fresh = client.get("/schedule/today").json()
    assert not any(e["taken"] for e in fresh["events"])
    assert client.get("/schedule/summary", params={"session_id": "sess_missing"}).status_code == 404


def test_fire_due_and_resync(client):
    med = _create(client, name="Alpha", times=("08:00",))["medication"]

    fired = client.post("/reminders/fire-due", json={"at": "08:00"}).json()["fired"]
    assert [p["medication_id"] for p in fired] == [med["id"]]
    # at most once per day
    assert client.post("/reminders/fire-due", json={"at": "08:00"}).json()["fired"] == []
    assert client.post("/reminders/fire-due", json={"at": "8am"}).status_code == 422

    r = client.post("/reminders/resync").json()
    assert r["results"][med["id"]]["ok"]
    assert len(client.get("/reminders").json()) == 1


def test_reminders_restored_on_restart():
    with TestClient(app) as first:
        med = _create(first, name="Aspirin", times=("08:00",))["medication"]

    # a new process starts with an empty scheduler
    get_scheduler.cache_clear()

    with TestClient(app) as second:
        assert [t["identifier"] for t in second.get("/reminders").json()] == [f"{med['id']}@08:00"]
        fired = second.post("/reminders/fire-due", json={"at": "08:00"}).json()["fired"]
        assert [p["name"] for p in fired] == ["Aspirin"]


def test_schedule_views_do_not_accumulate(client):
    _create(client, times=("08:00",))
    for _ in range(50):
        client.get("/schedule/today")
    assert len(SCHEDULE_SESSIONS) == MAX_SESSIONS


def test_reminder_tick_survives_a_failed_delivery(monkeypatch):
    calls = []

    class FlakyScheduler:
        def fire_due(self):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("notification service unavailable")
            raise asyncio.CancelledError()

    monkeypatch.setattr(main, "get_scheduler", lambda: FlakyScheduler())
    with pytest.raises(asyncio.CancelledError):
        asyncio.run(main._reminder_tick(0))
    assert len(calls) == 2
