import os
from fastapi.testclient import TestClient
from main import app
from database.connection import create_tables

# Ensure tables exist for tests (sqlite fallback)
create_tables()


def test_root():
    client = TestClient(app)
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "running"
    assert data["message"] == "Corporate Calendar Service"


def test_health():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_readiness():
    client = TestClient(app)
    r = client.get("/readiness")
    assert r.status_code == 200
    assert r.json()["ready"] is True


def test_admin_requires_key_in_production(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("ADMIN_API_KEY", "secret123")
    client = TestClient(app)
    r = client.get("/admin/users")
    assert r.status_code == 401
    r2 = client.get("/admin/users", headers={"X-API-Key": "secret123"})
    assert r2.status_code == 200
    assert "users" in r2.json()


def test_calendar_routes_require_caller_identity():
    client = TestClient(app)
    r = client.get("/meetings")
    assert r.status_code == 401
    assert os.environ["DATABASE_URL"].startswith("sqlite:///")
