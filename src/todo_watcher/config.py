"""Configuration for TodoWatcher."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration, overridable via TODO_WATCHER_* env vars."""

    model_config = SettingsConfigDict(env_prefix="TODO_WATCHER_")

    todo_file: str = Field(default="")  # Overrides saved preferences at start-up
    preferences_file: str = Field(default="~/.config/todo-watcher/preferences.yaml")
    debounce_seconds: float = Field(default=0.25, gt=0)
    poll_interval: float = Field(default=2.0, gt=0)
    grace_period: float = Field(default=0.5, ge=0)
    recreate_delay: float = Field(default=0.1, ge=0)
    discovery_max_depth: int = Field(default=4, ge=1)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
