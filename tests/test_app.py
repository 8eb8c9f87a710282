import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from app import main
from common.config import TallyConfig
from storage.db import Database


@pytest.fixture
def db_path(monkeypatch, tmp_path):
    path = str(tmp_path / "cli.db")
    monkeypatch.delenv("TALLYTRACK_CONFIG", raising=False)
    monkeypatch.setenv("TALLYTRACK_DB_PATH", path)
    monkeypatch.setenv("TALLYTRACK_LOGGING_FILE_LOGGING", "false")
    monkeypatch.setenv("TALLYTRACK_LOGGING_CONSOLE_LOGGING", "false")
    return path


def run(capsys, *argv):
    code = main(list(argv))
    out, err = capsys.readouterr()
    return code, out.strip(), err


def test_created_task_can_be_tracked_over_http(capsys, db_path):
    code, project_id, _ = run(capsys, "add-project", "Website relaunch", "--account", "acc-1")
    assert code == 0
    code, task_id, _ = run(capsys, "add-task", "Homepage", "--project", project_id)
    assert code == 0

    db = Database(db_path)
    try:
        with TestClient(create_app(TallyConfig(), db=db)) as client:
            response = client.post(f"/tasks/{task_id}/time-tracking", json={"action": "start"})
            assert response.status_code == 200
            assert response.json()["accountId"] == "acc-1"
    finally:
        db.close()

    code, out, _ = run(capsys, "tasks", project_id)
    assert code == 0
    assert task_id in out
    assert "tracking" in out
    assert out.endswith("Homepage")


def test_today_prints_coarse_duration(capsys, db_path):
    code, out, _ = run(capsys, "today", "acc-1")
    assert code == 0
    assert out == "0m"


def test_unknown_project_is_reported(capsys, db_path):
    code, out, err = run(capsys, "add-task", "Orphan", "--project", "missing")
    assert code == 1
    assert out == ""
    assert "Error:" in err


def test_init_db_creates_schema(capsys, db_path):
    assert run(capsys, "init-db")[0] == 0
    db = Database(db_path)
    try:
        assert db._table_exists("time_entries")
    finally:
        db.close()
