"""Exception hierarchy for taskgraph.

Every error raised by the dependency engine, the document store and the
command line derives from :class:`TaskGraphError`, so callers can surface
any failure with a single ``except`` clause.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskgraph.dependencies.identifiers import TaskRef


class TaskGraphError(Exception):
    """Base exception for taskgraph errors."""

    pass


class InvalidIdFormatError(TaskGraphError):
    """Identifier token does not match ``N`` or ``N.M``."""

    def __init__(self, token: object, message: str | None = None) -> None:
        self.token = token
        super().__init__(
            message
            or f"Invalid task ID format: {token!r} (expected 'N' or 'N.M')"
        )


class TaskNotFoundError(TaskGraphError):
    """Reference does not resolve to an existing task or subtask."""

    def __init__(self, ref: TaskRef | str, message: str | None = None) -> None:
        self.ref = ref
        super().__init__(message or f"Task {ref} not found")


class ParentNotFoundError(TaskNotFoundError):
    """Subtask reference whose parent task does not exist."""

    def __init__(self, ref: TaskRef | str | None, parent_id: int) -> None:
        self.parent_id = parent_id
        if ref is None:
            message = f"Parent task {parent_id} not found"
        else:
            message = f"Parent task {parent_id} of subtask {ref} not found"
        super().__init__(ref or str(parent_id), message)


class SelfDependencyError(TaskGraphError):
    """A task or subtask cannot depend on itself."""

    def __init__(self, ref: TaskRef) -> None:
        self.ref = ref
        super().__init__(f"Task {ref} cannot depend on itself")


class DuplicateDependencyError(TaskGraphError):
    """Dependency is already present in the task's list."""

    def __init__(self, ref: TaskRef, depends_on: TaskRef) -> None:
        self.ref = ref
        self.depends_on = depends_on
        super().__init__(f"Task {ref} already depends on {depends_on}")


class WouldCreateCycleError(TaskGraphError):
    """Adding the dependency would close a cycle.

    Attributes:
        cycle: The offending path, starting and ending at the dependent.
    """

    def __init__(self, cycle: list[TaskRef]) -> None:
        self.cycle = cycle
        path = " -> ".join(str(ref) for ref in cycle)
        super().__init__(f"Circular dependency detected: {path}")


class InvalidStatusError(TaskGraphError):
    """Status value is not one of the known task statuses."""

    def __init__(self, status: str, allowed: list[str]) -> None:
        self.status = status
        self.allowed = allowed
        super().__init__(
            f"Invalid status {status!r}. Valid statuses: {', '.join(allowed)}"
        )


class InvalidOperationError(TaskGraphError):
    """Operation is well-formed but not permitted on the current collection."""

    pass


class StorageError(TaskGraphError):
    """Task document could not be read or written."""

    pass
