"""Tests for TaskStore."""

import itertools
import threading
from datetime import datetime, timedelta

import pytest

from todo_watcher.task_store import StoreSnapshot, TaskStore
from todo_watcher.todo.parser import parse_tasks

TEXT = "- [ ] one\n- [x] two [HIGH]"


@pytest.fixture
def store() -> TaskStore:
    base = datetime(2026, 1, 1, 12, 0, 0)
    ticks = itertools.count()
    return TaskStore(clock=lambda: base + timedelta(seconds=next(ticks)))


def test_commit_replaces_and_timestamps(store: TaskStore) -> None:
    assert store.commit(parse_tasks(TEXT)) is True

    snapshot = store.snapshot()
    assert [t.content for t in snapshot.tasks] == ["one", "two"]
    assert snapshot.last_updated == datetime(2026, 1, 1, 12, 0, 0)


def test_value_equal_commit_is_noop(store: TaskStore) -> None:
    """Test re-parsing identical text does not bump last_updated or notify."""
    store.commit(parse_tasks(TEXT))
    first = store.snapshot()
    seen: list[StoreSnapshot] = []
    store.subscribe(seen.append)

    assert store.commit(parse_tasks(TEXT)) is False

    assert store.snapshot().last_updated == first.last_updated
    # Identities from the first parse are kept
    assert [t.id for t in store.tasks] == [t.id for t in first.tasks]
    assert seen == []


def test_changed_commit_notifies(store: TaskStore) -> None:
    seen: list[StoreSnapshot] = []
    store.subscribe(seen.append)

    store.commit(parse_tasks(TEXT))
    store.commit(parse_tasks("- [ ] three"))

    assert [len(s.tasks) for s in seen] == [2, 1]
    assert seen[1].last_updated > seen[0].last_updated


def test_commit_clears_error_without_bumping_timestamp(store: TaskStore) -> None:
    store.commit(parse_tasks(TEXT))
    stamp = store.snapshot().last_updated
    store.record_error("Failed to read: boom")

    assert store.commit(parse_tasks(TEXT)) is False

    snapshot = store.snapshot()
    assert snapshot.last_error is None
    assert snapshot.last_updated == stamp


def test_record_error_keeps_tasks(store: TaskStore) -> None:
    store.commit(parse_tasks(TEXT))

    store.record_error("Failed to read: gone")

    snapshot = store.snapshot()
    assert snapshot.last_error == "Failed to read: gone"
    assert len(snapshot.tasks) == 2


def test_clear(store: TaskStore) -> None:
    store.commit(parse_tasks(TEXT))

    assert store.clear() is True
    assert store.tasks == ()
    assert store.clear() is False


def test_watch_flags_notify_only_on_change(store: TaskStore) -> None:
    seen: list[StoreSnapshot] = []
    store.subscribe(seen.append)

    store.set_watching(True)
    store.set_watching(True)
    store.set_watched_path("/tmp/todo.md")
    store.set_watched_path("/tmp/todo.md")

    assert len(seen) == 2
    assert seen[-1].is_watching is True
    assert seen[-1].watched_path == "/tmp/todo.md"


def test_unsubscribe(store: TaskStore) -> None:
    seen: list[StoreSnapshot] = []
    unsubscribe = store.subscribe(seen.append)

    unsubscribe()
    store.commit(parse_tasks(TEXT))

    assert seen == []


def test_listener_error_does_not_break_commit(store: TaskStore) -> None:
    def broken(snapshot: StoreSnapshot) -> None:
        raise RuntimeError("listener failed")

    seen: list[StoreSnapshot] = []
    store.subscribe(broken)
    store.subscribe(seen.append)

    assert store.commit(parse_tasks(TEXT)) is True
    assert len(seen) == 1


def test_concurrent_equal_commits_notify_once(store: TaskStore) -> None:
    """Test racing writers with the same content produce a single change."""
    seen: list[StoreSnapshot] = []
    store.subscribe(seen.append)
    barrier = threading.Barrier(8)

    def writer() -> None:
        barrier.wait()
        store.commit(parse_tasks(TEXT))

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(seen) == 1
