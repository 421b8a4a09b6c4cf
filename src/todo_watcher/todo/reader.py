"""Todo file reader."""

import logging
from pathlib import Path

from todo_watcher.todo.models import TaskRecord
from todo_watcher.todo.parser import parse_tasks

logger = logging.getLogger(__name__)


class ReadError(OSError):
    """Raised when the todo file cannot be read or decoded."""


def read_todo_file(path: Path) -> list[TaskRecord]:
    """Read and parse a todo file.

    Args:
        path: Path to the checklist file

    Returns:
        Parsed and sorted tasks

    Raises:
        ReadError: If the file vanished mid-read, is unreadable or is not UTF-8
    """
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ReadError(f"{path.name} is not valid UTF-8: {e.reason}") from e
    except OSError as e:
        raise ReadError(e.strerror or str(e)) from e

    tasks = parse_tasks(content)
    logger.debug(f"[TodoReader] Parsed {len(tasks)} tasks from {path}")
    return tasks
