from __future__ import annotations

import os
import sys
from pathlib import Path

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from db.database import Base, engine, get_db  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_test_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        engine.dispose()


def _create(client: TestClient, **overrides) -> dict:
    body = {"name": "Run", "color": "teal", "start_date": "2024-01-01", "end_date": "2024-01-10"}
    body.update(overrides)
    response = client.post("/api/goals", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_presets_listed(client):
    response = client.get("/api/goals/presets")
    assert response.status_code == 200
    assert [p["days"] for p in response.json()] == [30, 90, 180, 365]


def test_create_and_read_goal(client):
    goal = _create(client, end_date=None, duration_days=90)

    assert goal["color"] == "#38B2AC"
    assert goal["end_date"] == "2024-03-30"
    assert goal["total_days"] == 90

    response = client.get(f"/api/goals/{goal['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Run"


def test_create_goal_rejects_bad_input(client):
    bad_date = client.post(
        "/api/goals",
        json={"name": "Run", "color": "teal", "start_date": "2024/01/01", "duration_days": 30},
    )
    assert bad_date.status_code == 422

    bad_color = client.post(
        "/api/goals",
        json={"name": "Run", "color": "beige", "start_date": "2024-01-01", "duration_days": 30},
    )
    assert bad_color.status_code == 400


def test_unknown_goal_returns_404(client):
    assert client.get("/api/goals/missing").status_code == 404
    assert client.get("/api/goals/missing/stats").status_code == 404
    assert client.post("/api/goals/missing/days/2024-01-01/toggle").status_code == 404


def test_toggle_then_stats_and_grid(client):
    goal = _create(client)
    goal_id = goal["id"]

    for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
        response = client.post(f"/api/goals/{goal_id}/days/{day}/toggle", params={"today": "2024-01-04"})
        assert response.status_code == 200
        assert response.json()["is_completed"] is True
        assert response.json()["goal_is_completed"] is False

    stats = client.get(f"/api/goals/{goal_id}/stats", params={"today": "2024-01-04"}).json()
    assert stats["current_streak"] == 3
    assert stats["total_completed"] == 3
    assert stats["percentage"] == 75

    grid = client.get(f"/api/goals/{goal_id}/grid", params={"today": "2024-01-04"}).json()
    assert grid["column_numbers"] == [1, 2, 3, 4, 5]
    assert [row["month_key"] for row in grid["rows"]] == ["2024-01"]
    assert grid["today_row_index"] == 0

    dots = client.get(f"/api/goals/{goal_id}/dots", params={"today": "2024-01-04"}).json()
    assert [dot["state"] for dot in dots[:5]] == ["completed", "completed", "completed", "today", "future"]


def test_toggle_future_day_is_rejected(client):
    goal = _create(client)
    response = client.post(
        f"/api/goals/{goal['id']}/days/2024-01-08/toggle",
        params={"today": "2024-01-04"},
    )
    assert response.status_code == 400


def test_invalid_today_is_422(client):
    goal = _create(client)
    response = client.get(f"/api/goals/{goal['id']}/stats", params={"today": "tomorrow"})
    assert response.status_code == 422


def test_note_and_day_context(client):
    goal = _create(client)
    response = client.put(f"/api/goals/{goal['id']}/days/2024-01-03/note", json={"note": "  easy 5k "})
    assert response.status_code == 200
    payload = response.json()
    assert payload["note"] == "easy 5k"
    assert payload["is_completed"] is False
    assert payload["display_date"] == "Wednesday, Jan 3"
    assert payload["context"] == "Day 3 of 10"


def test_completion_badge_after_last_day(client):
    goal = _create(client, end_date="2024-01-02")
    goal_id = goal["id"]
    client.post(f"/api/goals/{goal_id}/days/2024-01-01/toggle", params={"today": "2024-01-02"})
    response = client.post(f"/api/goals/{goal_id}/days/2024-01-02/toggle", params={"today": "2024-01-02"})
    assert response.json()["goal_is_completed"] is True
    assert client.get(f"/api/goals/{goal_id}").json()["is_completed"] is True


def test_archive_listing_and_delete(client):
    first = _create(client, name="First")
    second = _create(client, name="Second")

    assert client.post(f"/api/goals/{first['id']}/archive").status_code == 200
    assert [g["name"] for g in client.get("/api/goals").json()] == ["Second"]
    assert [g["name"] for g in client.get("/api/goals", params={"status": "archived"}).json()] == ["First"]

    reordered = client.put("/api/goals/order", json={"ordered_ids": [second["id"]]})
    assert reordered.status_code == 200

    assert client.delete(f"/api/goals/{first['id']}").status_code == 200
    assert client.get(f"/api/goals/{first['id']}").status_code == 404


def test_startup_creates_full_schema():
    inspector = inspect(engine)
    goal_columns = {col["name"] for col in inspector.get_columns("goals")}
    day_columns = {col["name"] for col in inspector.get_columns("day_entries")}

    assert {"sort_order", "is_completed", "is_archived"} <= goal_columns
    assert {"note", "completed_at"} <= day_columns
    unique = [idx for idx in inspector.get_indexes("day_entries") if idx["name"] == "idx_day_entries_goal_date"]
    assert unique and unique[0]["unique"]


def test_only_api_routes_are_served(client):
    assert client.get("/").status_code == 404
    assert all(getattr(route, "path", "").startswith(("/api", "/docs", "/openapi", "/redoc")) for route in app.routes)
