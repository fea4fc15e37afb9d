"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``TASKGRAPH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKGRAPH_",
        case_sensitive=False,
        extra="ignore",
    )

    tasks_file: Path = Field(
        default=Path("tasks/tasks.json"),
        description="Default task document used by the CLI",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging regardless of log_level",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file; rotated daily",
    )
    default_priority: Literal["high", "medium", "low"] = Field(
        default="medium",
        description="Priority given to subtasks created without one",
    )

    @property
    def effective_log_level(self) -> str:
        """Get the level actually used for sinks."""
        return "DEBUG" if self.debug else self.log_level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.tasks_file
        PosixPath('tasks/tasks.json')
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
