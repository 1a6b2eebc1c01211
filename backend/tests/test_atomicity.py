"""Unexpected failures inside a unit of work roll back every write and answer 500."""
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from pawdesk.models.audit_log import AuditLog
from pawdesk.models.package import Package
from pawdesk.models.training_session import TrainingSession


def _fail_audit(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr("pawdesk.services.audit_trail.record", boom)


def test_create_failure_rolls_back_clone_session_and_ledger(client: TestClient, session: Session, kennel, monkeypatch):
    _fail_audit(monkeypatch)

    resp = client.post(
        "/api/sessions",
        json={
            "dogId": kennel["dog_a_id"],
            "startTime": "2026-11-02T09:30:00Z",
            "durationMinutes": 60,
            "location": "Riverside Park",
            "packageId": kennel["template_id"],
        },
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to create session."}

    session.expire_all()
    assert session.exec(select(TrainingSession)).all() == []
    assert len(session.exec(select(Package)).all()) == 4
    assert session.exec(select(AuditLog)).all() == []


def test_update_failure_leaves_ledger_untouched(client: TestClient, session: Session, kennel, monkeypatch):
    resp = client.post(
        "/api/sessions",
        json={
            "dogId": kennel["dog_a_id"],
            "startTime": "2026-11-02T09:30:00Z",
            "durationMinutes": 60,
            "location": "Riverside Park",
            "packageId": kennel["package_a_id"],
        },
    )
    session_id = resp.json()["session"]["id"]

    _fail_audit(monkeypatch)
    resp = client.patch(f"/api/sessions/{session_id}", json={"packageId": kennel["package_a2_id"], "durationMinutes": 90})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to update session."}

    session.expire_all()
    row = session.get(TrainingSession, session_id)
    assert row.package_id == kennel["package_a_id"]
    assert row.duration_minutes == 60
    assert session.get(Package, kennel["package_a_id"]).used_credits == 10
    assert session.get(Package, kennel["package_a2_id"]).used_credits == 0


def test_delete_failure_keeps_session_and_credit(client: TestClient, session: Session, kennel, monkeypatch):
    resp = client.post(
        "/api/sessions",
        json={
            "dogId": kennel["dog_a_id"],
            "startTime": "2026-11-02T09:30:00Z",
            "durationMinutes": 60,
            "location": "Riverside Park",
            "packageId": kennel["package_a_id"],
        },
    )
    session_id = resp.json()["session"]["id"]

    _fail_audit(monkeypatch)
    resp = client.delete(f"/api/sessions/{session_id}")

    assert resp.status_code == 500
    session.expire_all()
    assert session.get(TrainingSession, session_id) is not None
    assert session.get(Package, kennel["package_a_id"]).used_credits == 10
