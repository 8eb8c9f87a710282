import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from common.config import TallyConfig
from core.clock import parse_iso
from domain.errors import TransactionFailure


@pytest.fixture
def client(db, clock):
    app = create_app(config=TallyConfig(), db=db, clock=clock)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def task(task_service, project):
    return task_service.create_task("Homepage", project_id=project.id)


class TestTaskEndpoints:
    def test_get_task_snapshot(self, client, task):
        response = client.get(f"/tasks/{task.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == task.id
        assert body["isTracking"] is False
        assert body["trackedStartTime"] is None
        assert body["totalTrackedTime"] == 0
        assert body["elapsedTime"] == 0
        assert "X-Request-ID" in response.headers

    def test_start_then_stop(self, client, task, clock):
        response = client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        assert response.status_code == 200
        body = response.json()
        assert body["isTracking"] is True
        assert parse_iso(body["trackedStartTime"]) == clock.now()

        clock.advance(42)
        assert client.get(f"/tasks/{task.id}").json()["elapsedTime"] == 42

        response = client.post(
            f"/tasks/{task.id}/time-tracking",
            json={"action": "stop", "description": "hero copy"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["isTracking"] is False
        assert body["totalTrackedTime"] == 42

        entries = client.get(f"/tasks/{task.id}/time-entries").json()
        assert len(entries) == 1
        assert entries[0]["duration"] == 42
        assert entries[0]["description"] == "hero copy"
        assert entries[0]["taskId"] == task.id
        assert entries[0]["projectId"] is None

    def test_stop_idle_task_is_conflict(self, client, task):
        response = client.post(f"/tasks/{task.id}/time-tracking", json={"action": "stop"})
        assert response.status_code == 409
        body = response.json()
        assert body["errorType"] == "not_tracking"
        assert body["statusCode"] == 409
        assert body["path"] == f"/tasks/{task.id}/time-tracking"

    def test_start_running_task_is_conflict(self, client, task):
        client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        response = client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        assert response.status_code == 409
        assert response.json()["errorType"] == "already_tracking"

    def test_unknown_task_is_404(self, client):
        assert client.get("/tasks/nope").status_code == 404
        response = client.post("/tasks/nope/time-tracking", json={"action": "start"})
        assert response.status_code == 404
        assert response.json()["errorType"] == "resource_not_found"

    @pytest.mark.parametrize("payload", [{"action": "pause"}, {}, {"action": "stop", "description": "x" * 3000}])
    def test_invalid_body_is_400(self, client, task, payload):
        response = client.post(f"/tasks/{task.id}/time-tracking", json=payload)
        assert response.status_code == 400
        assert response.json()["errorType"] == "validation_error"

    def test_storage_failure_is_503(self, client, task, monkeypatch):
        coordinator = client.app.state.coordinator

        def broken(task_id):
            raise TransactionFailure("database is locked")

        monkeypatch.setattr(coordinator, "start_task", broken)
        response = client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        assert response.status_code == 503
        assert response.json()["errorType"] == "transaction_failure"


class TestProjectEndpoints:
    def test_project_start_stops_task(self, client, project, task, clock):
        client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        clock.advance(60)

        response = client.post(f"/projects/{project.id}/time-tracking", json={"action": "start"})
        assert response.status_code == 200
        assert response.json()["isTracking"] is True
        assert client.get(f"/tasks/{task.id}").json()["isTracking"] is False

        clock.advance(90)
        response = client.post(f"/projects/{project.id}/time-tracking", json={"action": "stop"})
        body = response.json()
        assert body["totalTrackedTime"] == 90
        assert body["isTracking"] is False
        assert body["name"] == "Website relaunch"

    def test_stop_idle_project_is_conflict(self, client, project):
        response = client.post(f"/projects/{project.id}/time-tracking", json={"action": "stop"})
        assert response.status_code == 409

    def test_project_entries_and_summary(self, client, project, task, clock):
        client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        clock.advance(30)
        client.post(f"/projects/{project.id}/time-tracking", json={"action": "start"})
        clock.advance(20)

        entries = client.get(f"/projects/{project.id}/time-entries").json()
        assert len(entries) == 2
        assert entries[0]["endTime"] is None

        summary = client.get(f"/projects/{project.id}/time-summary").json()
        assert summary == {
            "projectId": project.id,
            "projectSeconds": 20,
            "taskSeconds": 30,
            "totalSeconds": 50,
        }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_route_uses_error_body(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["errorType"] == "resource_not_found"


class TestCatalogEndpoints:
    def test_create_project_and_tasks_then_track(self, client, clock):
        response = client.post("/projects", json={"name": "Launch", "accountId": "acc-9"})
        assert response.status_code == 201
        project = response.json()
        assert project["accountId"] == "acc-9"
        assert project["isTracking"] is False

        for title in ("Copy", "assets"):
            response = client.post(f"/projects/{project['id']}/tasks", json={"title": title})
            assert response.status_code == 201
            assert response.json()["accountId"] == "acc-9"

        listed = client.get(f"/projects/{project['id']}/tasks").json()
        assert [t["title"] for t in listed] == ["assets", "Copy"]

        task_id = listed[1]["id"]
        client.post(f"/tasks/{task_id}/time-tracking", json={"action": "start"})
        clock.advance(15)

        listed = client.get(f"/projects/{project['id']}/tasks").json()
        assert [(t["isTracking"], t["elapsedTime"]) for t in listed] == [(False, 0), (True, 15)]

    def test_task_list_of_unknown_project_is_404(self, client):
        assert client.get("/projects/nope/tasks").status_code == 404
        response = client.post("/projects/nope/tasks", json={"title": "Orphan"})
        assert response.status_code == 404

    @pytest.mark.parametrize("payload", [{}, {"name": ""}, {"name": "   "}])
    def test_invalid_project_is_400(self, client, payload):
        response = client.post("/projects", json=payload)
        assert response.status_code == 400
        assert response.json()["errorType"] == "validation_error"

    def test_time_today(self, client, project, task, clock):
        client.post(f"/tasks/{task.id}/time-tracking", json={"action": "start"})
        clock.advance(45)
        client.post(f"/tasks/{task.id}/time-tracking", json={"action": "stop"})

        body = client.get("/accounts/acc-1/time-today").json()
        assert body["accountId"] == "acc-1"
        assert body["totalSeconds"] == 45
        assert parse_iso(body["since"]) == clock.now().replace(hour=0, minute=0, second=0, microsecond=0)
