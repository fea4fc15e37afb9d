"""Dependency engine - validation, repair, edits and next-task selection.

This package provides the operations external collaborators call:
- Identifier parsing and resolution (``N`` / ``N.M`` -> TaskRef -> item)
- Graph building and cycle detection
- Validation (collection -> violations)
- Repair (collection -> repaired copy + actions)
- Dependency-preserving edits
- Next eligible task selection
"""

from taskgraph.dependencies.graph import DependencyGraph, build_graph
from taskgraph.dependencies.identifiers import (
    TaskRef,
    find_entity,
    format_task_ref,
    parse_task_ref,
    parse_task_refs,
    resolve,
    resolve_entity,
)
from taskgraph.dependencies.models import (
    DependencyChange,
    NextTaskResult,
    RemovalSummary,
    RepairAction,
    SelectionOutcome,
    Subtask,
    Task,
    TaskCollection,
    TaskPriority,
    TaskStatus,
    Violation,
    ViolationKind,
    WorkItem,
)
from taskgraph.dependencies.mutations import (
    add_dependency,
    add_subtask,
    add_task,
    clear_subtasks,
    convert_subtask_to_task,
    convert_task_to_subtask,
    remove_dependency,
    remove_subtask,
    remove_task,
    set_status,
)
from taskgraph.dependencies.repair import fix
from taskgraph.dependencies.selector import is_ready, next_task
from taskgraph.dependencies.validator import ValidationReport, validate, validate_report

__all__ = [
    # Models
    "DependencyChange",
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
    "WorkItem",
    # Identifiers
    "find_entity",
    "format_task_ref",
    "parse_task_ref",
    "parse_task_refs",
    "resolve",
    "resolve_entity",
    # Graph
    "DependencyGraph",
    "build_graph",
    # Validation and repair
    "ValidationReport",
    "fix",
    "validate",
    "validate_report",
    # Edits
    "add_dependency",
    "add_subtask",
    "add_task",
    "clear_subtasks",
    "convert_subtask_to_task",
    "convert_task_to_subtask",
    "remove_dependency",
    "remove_subtask",
    "remove_task",
    "set_status",
    # Selection
    "is_ready",
    "next_task",
]
