"""Tests for API endpoints."""

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from todo_watcher.factory import create_app
from todo_watcher.service import TodoService


@pytest.fixture
def test_client(service: TodoService, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """Create test client backed by a service with fake observers."""
    # Override factory singletons
    monkeypatch.setattr("todo_watcher.factory._todo_service", service)
    monkeypatch.setattr("todo_watcher.factory._connection_manager", None)

    app = create_app()

    return TestClient(app)


def test_list_todos_empty(test_client: TestClient) -> None:
    response = test_client.get("/api/todos")

    assert response.status_code == 200
    data = response.json()
    assert data["tasks"] == []
    assert data["status"]["watched_path"] == ""
    assert data["status"]["is_watching"] is False
    assert data["counts"] == {"pending": 0, "in_progress": 0, "completed": 0}


def test_watch_then_list(test_client: TestClient, todo_file: Path) -> None:
    response = test_client.post("/api/watch", json={"path": str(todo_file)})

    assert response.status_code == 200
    assert response.json()["watched_path"] == str(todo_file)
    assert response.json()["is_watching"] is True

    data = test_client.get("/api/todos").json()
    first = data["tasks"][0]
    assert first["content"] == "Refactor parser"
    assert first["status"] == "in_progress"
    assert first["priority"] == "medium"
    assert first["original_line"] == "- [~] Refactor parser"
    assert "id" in first
    assert data["counts"] == {"pending": 3, "in_progress": 1, "completed": 1}
    assert data["status"]["last_updated"] is not None


def test_watch_blank_path_rejected(test_client: TestClient) -> None:
    response = test_client.post("/api/watch", json={"path": "   "})

    assert response.status_code == 400


def test_stop_watching(test_client: TestClient, todo_file: Path) -> None:
    test_client.post("/api/watch", json={"path": str(todo_file)})

    response = test_client.delete("/api/watch")

    assert response.status_code == 200
    assert response.json()["is_watching"] is False


def test_refresh_returns_latest_tasks(test_client: TestClient, todo_file: Path) -> None:
    test_client.post("/api/watch", json={"path": str(todo_file)})
    todo_file.write_text("- [ ] only one", encoding="utf-8")

    response = test_client.post("/api/refresh")

    assert response.status_code == 200
    assert [t["content"] for t in response.json()["tasks"]] == ["only one"]


def test_status_reports_read_error(test_client: TestClient, todo_file: Path) -> None:
    test_client.post("/api/watch", json={"path": str(todo_file)})
    todo_file.write_bytes(b"\xff\xfe")
    test_client.post("/api/refresh")

    response = test_client.get("/api/status")

    assert response.status_code == 200
    assert response.json()["last_error"].startswith("Failed to read:")


def test_detect_without_discovery_returns_404(test_client: TestClient) -> None:
    response = test_client.post("/api/detect")

    assert response.status_code == 404


def test_set_auto_detect(test_client: TestClient) -> None:
    response = test_client.put("/api/settings/auto-detect", json={"enabled": False})

    assert response.status_code == 200
    assert response.json()["auto_detect"] is False


def test_websocket_sends_snapshot_and_pong(test_client: TestClient, todo_file: Path) -> None:
    test_client.post("/api/watch", json={"path": str(todo_file)})

    with test_client.websocket_connect("/ws") as websocket:
        message = websocket.receive_json()
        assert message["type"] == "todos"
        assert len(message["tasks"]) == 5
        assert message["status"]["watched_path"] == str(todo_file)

        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


def test_lifespan_starts_service_off_event_loop(
    service: TodoService, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []

    def recording_start(initial_path: str = "") -> None:
        try:
            asyncio.get_running_loop()
            calls.append("event loop")
        except RuntimeError:
            calls.append("worker thread")

    monkeypatch.setattr(service, "start", recording_start)
    monkeypatch.setattr("todo_watcher.factory._todo_service", service)
    monkeypatch.setattr("todo_watcher.factory._connection_manager", None)

    with TestClient(create_app()):
        pass

    assert calls == ["worker thread"]
