import pathlib
import sys

import httpx
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from calendar_sync.client.api import RemoteClient  # noqa: E402
from calendar_sync.dependencies import get_store, get_sync_service  # noqa: E402
from calendar_sync.index.store import CalendarStore  # noqa: E402
from calendar_sync.main import app  # noqa: E402
from calendar_sync.sync.service import SyncService  # noqa: E402


def _step(step_id, goal_id=1, day="2025-05-01T00:00:00", status="planned", color="#AA0000"):
    return {
        "id": step_id,
        "goal_id": goal_id,
        "goal_name": f"Goal {goal_id}",
        "color": color,
        "title": "Step",
        "description": "",
        "status": status,
        "date": day,
    }


def _goal(goal_id, steps):
    return {"id": goal_id, "title": f"Goal {goal_id}", "color": "#AA0000", "progress": 0, "steps": steps}


def _remote(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/goals/with-steps":
        return httpx.Response(200, json=[_goal(1, [_step(1), _step(2, status="done")])])
    if request.url.path == "/api/goals/1" and request.method == "DELETE":
        return httpx.Response(401, json={"message": "Token has expired"})
    return httpx.Response(500, text="unexpected")


def _client():
    store = CalendarStore()
    remote = RemoteClient(base_url="https://api.test", token="tok", transport=httpx.MockTransport(_remote))
    service = SyncService(remote, store)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sync_service] = lambda: service
    return TestClient(app), store


def teardown_function():
    app.dependency_overrides.clear()


def test_health():
    client, _ = _client()
    assert client.get("/health").json() == {"status": "ok"}


def test_rebuild_and_query_day():
    client, _ = _client()
    res = client.post(
        "/calendar/rebuild",
        json={"goals": [_goal(1, [_step(1), _step(2, status="done"), _step(3), _step(4, day="oops")])]},
    )
    assert res.status_code == 200
    assert res.json() == {"goals": 1, "steps": 3}
    day = client.get("/calendar/days/2025-05-01")
    assert [step["id"] for step in day.json()] == [1, 3, 2]
    assert client.get("/calendar/days/not-a-day").status_code == 400


def test_day_summaries_filtered_by_month():
    client, _ = _client()
    client.post(
        "/calendar/rebuild",
        json={"goals": [_goal(1, [_step(1), _step(2, day="2025-06-03T00:00:00", status="done", color="#00BB00")])]},
    )
    res = client.get("/calendar/days", params={"year": 2025, "month": 6})
    assert res.json() == [{"day": "2025-06-03", "total": 1, "done": 1, "colors": ["#00BB00"]}]


def test_selection_follows_events():
    client, _ = _client()
    client.post("/calendar/rebuild", json={"goals": [_goal(1, [_step(1)])]})
    selected = client.post("/calendar/select", json={"day": "01.05.2025"})
    assert selected.json()["day"] == "2025-05-01"
    assert selected.json()["total"] == 1

    res = client.post("/calendar/events", json={"kind": "steps_rescheduled", "steps": [_step(1, day="2025-05-02T00:00:00")]})
    assert res.status_code == 200
    assert res.json()["steps"] == []
    assert client.get("/calendar/selection").json()["total"] == 0

    assert client.delete("/calendar/selection").json()["day"] is None


def test_invalid_event_and_invalid_day_are_rejected():
    client, _ = _client()
    assert client.post("/calendar/events", json={"kind": "nope"}).status_code == 422
    assert client.post("/calendar/select", json={"day": "99.99.9999"}).status_code == 400
    assert client.post("/calendar/select", json={}).status_code == 400


def test_sync_bootstrap_then_goals():
    client, store = _client()
    res = client.post("/sync", json={"operation": "bootstrap"})
    assert res.status_code == 200
    assert [goal["id"] for goal in res.json()] == [1]
    assert [goal["id"] for goal in client.get("/calendar/goals").json()] == [1]
    assert [step.id for step in store.index.steps_for_day("2025-05-01")] == [1, 2]


def test_sync_errors_map_to_http_status():
    client, store = _client()
    client.post("/sync", json={"operation": "bootstrap"})
    res = client.post("/sync", json={"operation": "delete_goal", "goalId": 1})
    assert res.status_code == 401
    assert res.json()["detail"]["kind"] == "session_expired"
    assert store.goal(1) is not None
    assert client.post("/sync", json={"operation": "delete_goal"}).status_code == 400
    assert client.post("/sync", json={"operation": "teleport"}).status_code == 400


def test_sync_unknown_step_is_not_found_and_ids_are_coerced():
    client, _ = _client()
    client.post("/sync", json={"operation": "bootstrap"})
    res = client.post("/sync", json={"operation": "toggle_step", "stepId": "99"})
    assert res.status_code == 404
    assert res.json()["detail"]["kind"] == "unknown_step"
    assert client.post("/sync", json={"operation": "toggle_step", "stepId": "abc"}).status_code == 400
