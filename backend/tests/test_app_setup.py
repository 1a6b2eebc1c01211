"""Application wiring: health check and behaviour without a database."""
from fastapi.testclient import TestClient

from pawdesk import database
from pawdesk.main import app


def test_health_check(client: TestClient):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["app_name"] == "Pawdesk API"
    assert data["status"] == "healthy"
    assert data["build_hash"]


def test_data_endpoints_answer_503_without_database(monkeypatch):
    monkeypatch.setattr(database, "engine", None)
    app.dependency_overrides.clear()

    client = TestClient(app)

    resp = client.delete("/api/sessions/1")
    assert resp.status_code == 503
    assert resp.json() == {"error": "Database is not configured. Set DATABASE_URL to enable this action."}

    resp = client.get("/api/packages/templates")
    assert resp.status_code == 503

    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "not_configured"


def test_unexpected_error_on_read_route_returns_json(unguarded_client: TestClient, kennel, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("lookup failed")

    monkeypatch.setattr("pawdesk.routes.sessions.get_training_session", boom)

    resp = unguarded_client.get("/api/sessions/1")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error."}


def test_out_of_range_id_returns_json(unguarded_client: TestClient, kennel):
    """An id SQLite cannot bind fails outside any unit of work"""
    resp = unguarded_client.get(f"/api/sessions/{2**70}")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error."}
