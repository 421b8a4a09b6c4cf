"""Persisted user preferences (selected file, auto-detect flag)."""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    """User preferences that survive restarts."""

    saved_path: str = ""
    auto_detect: bool = True


class PreferencesStore:
    """YAML-backed preferences file."""

    def __init__(self, path: Path) -> None:
        """Initialize store for a preferences file (created on first save)."""
        self.path = path

    def load(self) -> Preferences:
        """Load preferences, falling back to defaults if missing or invalid."""
        if not self.path.exists():
            return Preferences()

        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"[Preferences] Failed to read {self.path}: {e}")
            return Preferences()

        if not isinstance(data, dict):
            logger.warning(f"[Preferences] Ignoring malformed {self.path}")
            return Preferences()

        saved_path = data.get("saved_path")
        auto_detect = data.get("auto_detect")
        return Preferences(
            saved_path=saved_path if isinstance(saved_path, str) else "",
            auto_detect=auto_detect if isinstance(auto_detect, bool) else True,
        )

    def save(self, preferences: Preferences) -> None:
        """Write preferences to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(asdict(preferences), default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )

    def save_path(self, path: str) -> None:
        """Persist the last user-selected file."""
        preferences = self.load()
        preferences.saved_path = path
        self.save(preferences)

    def save_auto_detect(self, enabled: bool) -> None:
        preferences = self.load()
        preferences.auto_detect = enabled
        self.save(preferences)
