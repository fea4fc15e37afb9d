"""Core module - configuration, errors and logging setup."""

from taskgraph.core.config import Settings, clear_settings_cache, get_settings
from taskgraph.core.errors import (
    DuplicateDependencyError,
    InvalidIdFormatError,
    InvalidOperationError,
    InvalidStatusError,
    ParentNotFoundError,
    SelfDependencyError,
    StorageError,
    TaskGraphError,
    TaskNotFoundError,
    WouldCreateCycleError,
)
from taskgraph.core.logging import configure_logging

__all__ = [
    "Settings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
    # Errors
    "DuplicateDependencyError",
    "InvalidIdFormatError",
    "InvalidOperationError",
    "InvalidStatusError",
    "ParentNotFoundError",
    "SelfDependencyError",
    "StorageError",
    "TaskGraphError",
    "TaskNotFoundError",
    "WouldCreateCycleError",
]
