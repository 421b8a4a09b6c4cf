"""Task models for parsed checklist files."""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class TaskStatus(str, Enum):
    """Checklist task status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Sort rank: in progress first, completed last."""
        return _STATUS_RANK.get(self, _STATUS_RANK[TaskStatus.PENDING])


class Priority(str, Enum):
    """Checklist task priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_STATUS_RANK = {
    TaskStatus.IN_PROGRESS: 0,
    TaskStatus.PENDING: 1,
    TaskStatus.COMPLETED: 2,
}

_PRIORITY_RANK = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


@dataclass(frozen=True)
class TaskRecord:
    """One task parsed from a checklist line.

    Equality compares content, status, priority and original_line only; the
    id is a per-instance handle for list diffing in UIs.
    """

    content: str  # Display text without checkbox/priority/status markup
    status: TaskStatus
    priority: Priority = Priority.MEDIUM
    original_line: str = ""  # Raw source line, untrimmed
    id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)

    def sort_key(self) -> tuple[int, int]:
        return (self.status.rank, self.priority.rank)


def count_by_status(tasks: Iterable[TaskRecord]) -> dict[str, int]:
    """Number of tasks per status value, including zero counts."""
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    return counts
