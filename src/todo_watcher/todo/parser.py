"""Checklist parser for todo files."""

import re

from todo_watcher.todo.models import Priority, TaskRecord, TaskStatus

_CHECKBOX_PREFIXES: dict[str, TaskStatus] = {
    "- [ ]": TaskStatus.PENDING,
    "* [ ]": TaskStatus.PENDING,
    "- [x]": TaskStatus.COMPLETED,
    "- [X]": TaskStatus.COMPLETED,
    "* [x]": TaskStatus.COMPLETED,
    "* [X]": TaskStatus.COMPLETED,
    "- [~]": TaskStatus.IN_PROGRESS,
    "- [/]": TaskStatus.IN_PROGRESS,
    "* [~]": TaskStatus.IN_PROGRESS,
    "* [/]": TaskStatus.IN_PROGRESS,
}

_BULLET_PREFIXES = ("- ", "* ")

_NUMBERED_PREFIX = re.compile(r"^\d+\.\s+")

# Precedence follows list order, not position in the line
PRIORITY_MARKERS: list[tuple[str, Priority]] = [
    ("[HIGH]", Priority.HIGH),
    ("[high]", Priority.HIGH),
    ("🔴", Priority.HIGH),
    ("!!!", Priority.HIGH),
    ("❗️", Priority.HIGH),
    ("[LOW]", Priority.LOW),
    ("[low]", Priority.LOW),
    ("🟢", Priority.LOW),
    ("[MED]", Priority.MEDIUM),
    ("[med]", Priority.MEDIUM),
    ("🟡", Priority.MEDIUM),
]

STATUS_TAGS: list[tuple[str, TaskStatus]] = [
    ("(in_progress)", TaskStatus.IN_PROGRESS),
    ("(in progress)", TaskStatus.IN_PROGRESS),
    ("(active)", TaskStatus.IN_PROGRESS),
    ("(completed)", TaskStatus.COMPLETED),
    ("(done)", TaskStatus.COMPLETED),
    ("(finished)", TaskStatus.COMPLETED),
    ("(pending)", TaskStatus.PENDING),
    ("(todo)", TaskStatus.PENDING),
]

_STATUS_TAG_PATTERNS = [
    (re.compile(re.escape(tag), re.IGNORECASE), status) for tag, status in STATUS_TAGS
]


def parse_tasks(text: str) -> list[TaskRecord]:
    """Parse checklist text into tasks sorted by status, then priority.

    Lines that are not checklist, bullet or numbered-list items are skipped.
    The sort is stable, so tasks with equal status and priority keep their
    order of appearance.
    """
    tasks: list[TaskRecord] = []
    for line in text.splitlines():
        task = _parse_line(line)
        if task is not None:
            tasks.append(task)
    return sorted(tasks, key=TaskRecord.sort_key)


def _parse_line(line: str) -> TaskRecord | None:
    """Parse a single line, or return None if it is not a task."""
    trimmed = line.strip()
    if not trimmed:
        return None

    split = _split_prefix(trimmed)
    if split is None:
        return None
    status, content = split

    priority = Priority.MEDIUM
    for marker, marker_priority in PRIORITY_MARKERS:
        if marker in content:
            priority = marker_priority
            content = content.replace(marker, "", 1)
            break

    for pattern, tag_status in _STATUS_TAG_PATTERNS:
        match = pattern.search(content)
        if match:
            status = tag_status
            content = content[: match.start()] + content[match.end() :]
            break

    content = content.strip()
    if not content:
        return None

    return TaskRecord(content=content, status=status, priority=priority, original_line=line)


def _split_prefix(trimmed: str) -> tuple[TaskStatus, str] | None:
    """Strip the list marker and return (status, remaining content)."""
    checkbox_status = _CHECKBOX_PREFIXES.get(trimmed[:5])
    if checkbox_status is not None:
        return checkbox_status, trimmed[5:].strip()

    if trimmed.startswith(_BULLET_PREFIXES):
        return TaskStatus.PENDING, trimmed[2:]

    match = _NUMBERED_PREFIX.match(trimmed)
    if match:
        return TaskStatus.PENDING, trimmed[match.end() :]

    return None
