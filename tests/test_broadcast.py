"""Tests for pushing store changes to WebSocket clients."""

import asyncio
import json
from typing import Any

import pytest

from todo_watcher import factory
from todo_watcher.service import TodoService
from todo_watcher.todo.parser import parse_tasks
from todo_watcher.websocket.connection_manager import ConnectionManager


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def accept(self) -> None:
        pass

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(json.loads(text))


def test_store_changes_are_broadcast(service: TodoService, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = ConnectionManager()
    monkeypatch.setattr("todo_watcher.factory._todo_service", service)
    monkeypatch.setattr("todo_watcher.factory._connection_manager", manager)
    websocket = FakeWebSocket()

    async def scenario() -> None:
        await manager.connect(websocket)  # type: ignore[arg-type]
        factory.start_broadcasting()
        try:
            service.store.commit(parse_tasks("- [ ] pushed [HIGH]"))
            # Equal content must not produce a second message
            service.store.commit(parse_tasks("- [ ] pushed [HIGH]"))
            for _ in range(50):
                await asyncio.sleep(0.01)
        finally:
            factory.stop_broadcasting()

    asyncio.run(scenario())

    assert len(websocket.sent) == 1
    message = websocket.sent[0]
    assert message["type"] == "todos"
    assert message["tasks"][0]["content"] == "pushed"
    assert message["tasks"][0]["priority"] == "high"


def test_dead_connections_are_dropped() -> None:
    manager = ConnectionManager()
    alive, dead = FakeWebSocket(), FakeWebSocket(fail=True)

    async def scenario() -> None:
        await manager.connect(alive)  # type: ignore[arg-type]
        await manager.connect(dead)  # type: ignore[arg-type]
        await manager.broadcast({"type": "todos", "tasks": []})

    asyncio.run(scenario())

    assert manager.active_connections == [alive]
    assert alive.sent == [{"type": "todos", "tasks": []}]
