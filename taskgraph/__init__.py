"""
taskgraph - dependency validation, repair and next-task selection for task documents.

Keeps the dependency edges between tasks and subtasks consistent and picks
the next unit of work.
"""

from loguru import logger

__version__ = "0.1.0"

# Library code stays quiet unless the host opts in (see core.logging).
logger.disable("taskgraph")

from taskgraph.dependencies import (  # noqa: E402
    NextTaskResult,
    RemovalSummary,
    RepairAction,
    SelectionOutcome,
    Subtask,
    Task,
    TaskCollection,
    TaskPriority,
    TaskRef,
    TaskStatus,
    Violation,
    ViolationKind,
    add_dependency,
    add_subtask,
    add_task,
    clear_subtasks,
    convert_subtask_to_task,
    convert_task_to_subtask,
    find_entity,
    fix,
    next_task,
    remove_dependency,
    remove_subtask,
    remove_task,
    resolve,
    resolve_entity,
    set_status,
    validate,
)

__all__ = [
    "NextTaskResult",
    "RemovalSummary",
    "RepairAction",
    "SelectionOutcome",
    "Subtask",
    "Task",
    "TaskCollection",
    "TaskPriority",
    "TaskRef",
    "TaskStatus",
    "Violation",
    "ViolationKind",
    "__version__",
    "add_dependency",
    "add_subtask",
    "add_task",
    "clear_subtasks",
    "convert_subtask_to_task",
    "convert_task_to_subtask",
    "find_entity",
    "fix",
    "next_task",
    "remove_dependency",
    "remove_subtask",
    "remove_task",
    "resolve",
    "resolve_entity",
    "set_status",
    "validate",
]
