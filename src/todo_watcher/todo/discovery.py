"""Todo file discovery in the user's home directory."""

import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", ".git", "Library", "Applications", ".Trash"})


class PathDiscovery(Protocol):
    """Protocol for picking a todo file to watch."""

    def discover(self) -> Path | None:
        """Return a candidate todo file path, or None if nothing was found."""
        ...


class TodoFileFinder:
    """Finds the most recently modified todo file under the home directory."""

    def __init__(
        self,
        home: Path | None = None,
        filename: str = "todo.md",
        max_depth: int = 4,
        extra_dirs: list[Path] | None = None,
    ) -> None:
        """Initialize finder.

        Args:
            home: Root of the search (defaults to the user's home directory)
            filename: File name to look for
            max_depth: Max path components below home, file name included
            extra_dirs: Directories checked directly in addition to the defaults
        """
        self._home = home or Path.home()
        self._filename = filename
        self._max_depth = max_depth
        self._extra_dirs = extra_dirs if extra_dirs is not None else [Path.cwd()]

    def discover(self) -> Path | None:
        """Return the newest matching file, or None."""
        best: Path | None = None
        best_mtime: float | None = None

        for candidate in self._candidates():
            try:
                mtime = candidate.stat().st_mtime
            except OSError:
                continue
            if best_mtime is None or mtime > best_mtime:
                best, best_mtime = candidate, mtime

        if best:
            logger.info(f"[TodoFileFinder] Found {best}")
        else:
            logger.info(f"[TodoFileFinder] No {self._filename} found under {self._home}")
        return best

    def _candidates(self) -> list[Path]:
        """Collect existing files in well-known dirs plus a depth-limited home walk."""
        known_dirs = [
            self._home,
            self._home / "Desktop",
            self._home / "Documents",
            self._home / "Developer",
            *self._extra_dirs,
        ]
        found: list[Path] = []
        seen: set[Path] = set()

        def add(path: Path) -> None:
            if path not in seen and path.is_file():
                seen.add(path)
                found.append(path)

        for directory in known_dirs:
            add(directory / self._filename)

        root_depth = len(self._home.parts)
        for dirpath, dirnames, filenames in os.walk(self._home):
            depth = len(Path(dirpath).parts) - root_depth
            if depth >= self._max_depth - 1:
                dirnames[:] = []
            else:
                dirnames[:] = [
                    d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS
                ]
            if self._filename in filenames:
                add(Path(dirpath) / self._filename)

        return found
