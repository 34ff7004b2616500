from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from app.db.record_store import StoreUnavailableError, SupabaseRecordStore
from app.features.garden import endpoints as garden_endpoints
from app.features.garden.service import GardenService
from app.features.leaderboard import endpoints as leaderboard_endpoints
from app.features.leaderboard.service import LeaderboardService
from app.features.metrics import endpoints as metrics_endpoints
from app.features.metrics.service import SubjectMetricsService
from app.features.progress import endpoints as progress_endpoints
from app.features.progress.service import ProgressService
from app.main import app
from tests.fakes import FakeClient

client = TestClient(app)


@pytest.fixture
def fake(settings, monkeypatch):
    db = FakeClient(
        {
            settings.students_table: [
                {"id": "s1", "classId": "c1", "parentId": "p1", "name": "Ana"},
                {"id": "s2", "classId": "c1", "parentId": "p2", "name": "Ben"},
            ],
            settings.assignments_table: [
                {"id": "a1", "classId": "c1", "status": "active"},
                {"id": "a2", "classId": "c1", "status": "active"},
            ],
            settings.submissions_table: [
                {"id": "x1", "assignmentId": "a1", "studentId": "s1", "classId": "c1", "status": "approved",
                 "subject": "Math", "score": 90},
                {"id": "x2", "assignmentId": "a2", "studentId": "s1", "classId": "c1", "status": "approved",
                 "subject": "Math", "score": 70},
                {"id": "x3", "assignmentId": "a1", "studentId": "s2", "classId": "c1", "status": "missed"},
            ],
            settings.leaderboard_table: [
                {"id": "f1", "familyName": "Abe", "totalPoints": 10},
                {"id": "f2", "familyName": "Bo", "totalPoints": 40},
            ],
        }
    )
    store = SupabaseRecordStore(db.factory, timeout=1.0)
    progress = ProgressService(store)
    monkeypatch.setattr(progress_endpoints, "progress_service", progress)
    monkeypatch.setattr(garden_endpoints, "garden_service", GardenService(store, progress))
    monkeypatch.setattr(metrics_endpoints, "metrics_service", SubjectMetricsService(store, ["Math", "Science"]))
    monkeypatch.setattr(leaderboard_endpoints, "leaderboard_service", LeaderboardService(store))
    return db


def test_root_and_healthz():
    assert client.get("/").json()["status"] == "ok"
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert "record_store" in resp.json()["components"]
    assert resp.headers["X-Request-Id"]


def test_request_id_is_echoed():
    resp = client.get("/", headers={"X-Request-Id": "req-123"})
    assert resp.headers["X-Request-Id"] == "req-123"


def test_student_progress(fake):
    resp = client.get("/progress/students/s1", params={"class_id": "c1"})
    assert resp.status_code == 200
    data = resp.json()
    assert (data["total"], data["completed"], data["percentage"]) == (2, 2, 100)
    assert data["stage"]["label"] == "Blooming"


def test_student_progress_unavailable(fake, settings):
    fake.failures[settings.assignments_table] = httpx.ConnectError("refused")
    resp = client.get("/progress/students/s1", params={"class_id": "c1"})
    assert resp.status_code == 503
    assert resp.json()["detail"]["error_code"] == "E_STORE_UNAVAILABLE"


def test_class_garden_and_summary(fake):
    garden = client.get("/garden/classes/c1").json()
    assert [s["completion_rate"] for s in garden["students"]] == [100, 0]
    assert garden["statistics"]["average_growth"] == 50

    summary = client.get("/garden/classes/c1/summary").json()
    assert summary["total_students"] == 2
    assert summary["average_completion_rate"] == 50


def test_parent_garden(fake):
    data = client.get("/garden/parents/p1").json()
    assert [c["name"] for c in data["children"]] == ["Ana"]
    assert data["class_summaries"][0]["class_id"] == "c1"


def test_garden_unavailable(fake, settings):
    fake.failures[settings.students_table] = httpx.ConnectError("refused")
    resp = client.get("/garden/classes/c1")
    assert resp.status_code == 503


def test_metrics_routes(fake):
    subjects = client.get("/metrics/students/s1/subjects", params={"class_id": "c1"}).json()
    assert subjects[0] == {"subject": "Math", "child_avg": 80, "class_avg": 80, "delta": 0}

    rankings = client.get("/metrics/classes/c1/rankings").json()
    assert [(r["student_id"], r["rank"]) for r in rankings] == [("s1", 1)]

    stats = client.get("/metrics/students/s2/submission-stats").json()
    assert stats == {"submitted": 0, "missed": 1}

    engagement = client.get("/metrics/students/s1/engagement", params={"today": "2024-01-03"}).json()
    assert engagement["minutes"] == 0
    assert engagement["week_start"] == "2024-01-01"

    assert client.get("/metrics/students/s1/monthly").status_code == 200


def test_leaderboard_snapshot(fake):
    data = client.get("/leaderboard", params={"limit": 1}).json()
    assert [(e["id"], e["rank"]) for e in data] == [("f2", 1)]
    assert client.get("/leaderboard", params={"limit": 0}).status_code == 422


def test_leaderboard_unavailable(monkeypatch):
    service = LeaderboardService()
    monkeypatch.setattr(service, "get_leaderboard", AsyncMock(side_effect=StoreUnavailableError("down")))
    monkeypatch.setattr(leaderboard_endpoints, "leaderboard_service", service)
    resp = client.get("/leaderboard")
    assert resp.status_code == 503
    assert resp.json()["detail"] == {"error_code": "E_STORE_UNAVAILABLE", "message": "down"}


def test_metrics_unavailable(monkeypatch):
    service = SubjectMetricsService()
    monkeypatch.setattr(service, "get_submission_stats", AsyncMock(side_effect=StoreUnavailableError("down")))
    monkeypatch.setattr(metrics_endpoints, "metrics_service", service)
    resp = client.get("/metrics/students/s1/submission-stats")
    assert resp.status_code == 503


def test_leaderboard_stream_sends_snapshot(fake):
    with client.websocket_connect("/leaderboard/ws?limit=5") as ws:
        entries = ws.receive_json()
    assert [e["id"] for e in entries] == ["f2", "f1"]
    assert entries[0]["badge_count"] == 0


def test_garden_stream(fake):
    with client.websocket_connect("/garden/ws") as ws:
        ws.send_json({})
        assert ws.receive_json()["error_code"] == "E_INVALID_INPUT"
        ws.send_text("class c1 please")
        assert ws.receive_json()["error_code"] == "E_INVALID_INPUT"
        ws.send_json({"class_id": "c1"})
        garden = ws.receive_json()
    assert garden["class_id"] == "c1"
    assert len(garden["students"]) == 2
