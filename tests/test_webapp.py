"""HTTP API."""

import pytest
from fastapi.testclient import TestClient

from coding_tracker.models import EntryKey
from coding_tracker.webapp import create_app

from conftest import START, BrokenStore


@pytest.fixture
def tracker(store, make_tracker):
    return make_tracker(store)


@pytest.fixture
def client(tracker):
    return TestClient(create_app(tracker=tracker, start_tracker=False))


def test_status(client):
    body = client.get("/api/status").json()
    assert body["state"] == "active"
    assert body["project"] == "api-server"
    assert body["branch"] == "main"
    assert body["running"] is False
    assert body["inactivity_minutes"] == 2.5
    assert body["last_reminder"] is None


def test_activity_is_queued(client, tracker):
    assert client.post("/api/activity", json={"kind": "edit"}).status_code == 202
    assert tracker.monitor.received == 1
    assert client.post("/api/activity", json={"kind": "typing"}).status_code == 422


def test_context_updates(client, tracker):
    assert client.post("/api/context", json={"branch": "feature"}).status_code == 202
    assert client.post("/api/context", json={"file_path": "cmd/main.go"}).status_code == 202
    tracker.pump()
    assert tracker.current_branch() == "feature"
    assert tracker.current_language() == "Go"

    assert client.post("/api/context", json={"project": "  "}).status_code == 400
    assert client.post("/api/context", json={"repo": "x"}).status_code == 422


def test_save_and_totals(client, tracker, clock, store):
    clock.advance(30)
    assert client.post("/api/save").status_code == 202
    tracker.pump()
    assert len(store.list_entries()) == 1

    totals = client.get("/api/totals").json()
    assert totals["today"] == pytest.approx(0.5)
    assert totals["current_project_today"] == pytest.approx(0.5)
    assert totals["today_display"] == "00:00:30"


def test_search_filters_and_validation(client, store):
    store.merge_entry(EntryKey(START.date(), "web", "main", "TypeScript"), 7)
    store.merge_entry(EntryKey(START.date(), "api-server", "main", "Python"), 3)

    body = client.get("/api/search", params={"project": "web"}).json()
    assert [e["project"] for e in body["entries"]] == ["web"]
    assert body["total_minutes"] == 7

    day = START.date().isoformat()
    body = client.get("/api/search", params={"start": day, "end": day}).json()
    assert body["total_minutes"] == 10

    assert client.get("/api/search", params={"start": "10/01/2024"}).status_code == 400
    assert (
        client.get("/api/search", params={"start": "2024-01-10", "end": "2024-01-01"}).status_code
        == 400
    )


def test_summary_projects_and_branches(client, store):
    store.merge_entry(EntryKey(START.date(), "api-server", "feature", "Python"), 4)
    summary = client.get("/api/summary").json()
    assert summary["projectSummary"] == {"api-server": 4}
    assert summary["branchSummary"] == {"feature": 4}

    assert client.get("/api/projects").json() == {"projects": ["api-server"]}
    assert client.get("/api/projects/api-server/branches").json()["branches"] == ["feature"]


def test_heatmap_and_insights(client, store):
    store.merge_entry(EntryKey(START.date(), "api-server", "main", "Python"), 200)
    body = client.get("/api/heatmap", params={"year": 2024, "month": 1}).json()
    assert len(body["days"]) == 31
    assert body["days"][9] == {"date": "2024-01-10", "minutes": 200, "level": 3}
    assert client.get("/api/heatmap", params={"month": 13}).status_code == 422

    insights = client.get("/api/insights").json()
    assert insights["streaks"]["current"] == 1


def test_storage_error_maps_to_503(make_tracker):
    client = TestClient(create_app(tracker=make_tracker(BrokenStore()), start_tracker=False))
    response = client.get("/api/summary")
    assert response.status_code == 503
    assert response.json() == {"detail": "Entry store unavailable"}
