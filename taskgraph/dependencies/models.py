"""Pydantic models for the task document and the dependency engine.

This module defines the persisted task document (tasks, subtasks and the
collection that owns them) together with the report types returned by
validation, repair, removal and next-task selection.
"""

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
    model_validator,
)

from taskgraph.dependencies.identifiers import TaskRef


def _ensure_unique(ids: Iterable[int], label: str) -> None:
    seen: set[int] = set()
    for item_id in ids:
        if item_id in seen:
            raise ValueError(f"duplicate {label}: {item_id}")
        seen.add(item_id)

# =============================================================================
# ENUMS
# =============================================================================


class TaskStatus(str, Enum):
    """Lifecycle status of a task or subtask."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if no further work is expected in this status."""
        return self in (TaskStatus.DONE, TaskStatus.CANCELLED)


class TaskPriority(str, Enum):
    """Task priority level."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, 0 being the most urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class ViolationKind(str, Enum):
    """Kind of dependency invariant breach."""

    SELF_DEPENDENCY = "self_dependency"
    DUPLICATE_DEPENDENCY = "duplicate_dependency"
    MISSING_DEPENDENCY = "missing_dependency"
    CYCLE = "cycle"


class SelectionOutcome(str, Enum):
    """Why next-task selection returned what it did."""

    AVAILABLE = "available"
    ALL_COMPLETE = "all_complete"
    ALL_BLOCKED = "all_blocked"


# =============================================================================
# TASK DOCUMENT
# =============================================================================


class WorkItem(BaseModel):
    """Fields shared by tasks and subtasks.

    Unknown fields in the persisted document are kept and written back.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int = Field(..., gt=0, description="Positive integer identifier")
    title: str = Field(default="", description="Short title")
    description: str = Field(default="", description="What needs doing")
    details: str = Field(default="", description="Implementation notes")
    test_strategy: str = Field(
        default="",
        alias="testStrategy",
        description="How completion is verified",
    )
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    dependencies: list[TaskRef] = Field(
        default_factory=list,
        description="References this item depends on, in order",
    )

    @property
    def is_terminal(self) -> bool:
        """Check if the item is done or cancelled."""
        return self.status.is_terminal


class Subtask(WorkItem):
    """Unit of work owned by exactly one task, addressed as ``parent.id``."""


class Task(WorkItem):
    """Top-level unit of work.

    Example:
        >>> task = Task(id=3, title="Wire API", dependencies=[1, "2.1"])
        >>> [str(ref) for ref in task.dependencies]
        ['1', '2.1']
    """

    subtasks: list[Subtask] = Field(
        default_factory=list,
        description="Subtasks owned by this task, in order",
    )

    @model_validator(mode="after")
    def check_unique_subtask_ids(self) -> "Task":
        """Ensure subtask ids are unique within the task."""
        _ensure_unique((s.id for s in self.subtasks), f"subtask id in task {self.id}")
        return self

    @property
    def ref(self) -> TaskRef:
        """Get the plain reference to this task."""
        return TaskRef(task_id=self.id)

    def get_subtask(self, subtask_id: int) -> Subtask | None:
        """Get a subtask by its id within this task."""
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    def subtask_ref(self, subtask: Subtask) -> TaskRef:
        """Get the composite reference to one of this task's subtasks."""
        return TaskRef(task_id=self.id, subtask_id=subtask.id)

    def next_subtask_id(self) -> int:
        """Get the next unused subtask id."""
        return max((s.id for s in self.subtasks), default=0) + 1


class TaskCollection(BaseModel):
    """The task document root.

    Example:
        >>> collection = TaskCollection.model_validate(
        ...     {"tasks": [{"id": 1, "title": "Setup"}]}
        ... )
        >>> collection.next_task_id()
        2
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    tasks: list[Task] = Field(default_factory=list)
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Opaque document metadata, preserved as-is",
    )

    @model_validator(mode="after")
    def check_unique_task_ids(self) -> "TaskCollection":
        """Ensure top-level task ids are unique."""
        _ensure_unique((t.id for t in self.tasks), "task id")
        return self

    @model_serializer(mode="wrap")
    def serialize(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        """Leave ``metadata`` out of documents that never had it."""
        data = handler(self)
        if self.metadata is None:
            data.pop("metadata", None)
        return data

    def get_task(self, task_id: int) -> Task | None:
        """Get a top-level task by id."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def iter_entities(self) -> Iterator[tuple[TaskRef, WorkItem]]:
        """Yield every task and subtask with its ref, in document order.

        Each task is followed by its own subtasks.
        """
        for task in self.tasks:
            yield task.ref, task
            for subtask in task.subtasks:
                yield task.subtask_ref(subtask), subtask

    def refs(self) -> list[TaskRef]:
        """Get refs of every task and subtask, in document order."""
        return [ref for ref, _ in self.iter_entities()]

    def next_task_id(self) -> int:
        """Get the next unused top-level task id."""
        return max((t.id for t in self.tasks), default=0) + 1

    def to_document(self) -> dict[str, Any]:
        """Convert to the JSON-compatible persisted form."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENGINE RESULTS
# =============================================================================


class Violation(BaseModel):
    """A detected breach of a dependency invariant.

    ``entity`` and ``ref`` are set for node-local violations; ``cycle`` is set
    for cycles, as a closed path starting at its lowest id.
    """

    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    entity: TaskRef | None = Field(default=None, description="Dependent item")
    ref: TaskRef | None = Field(default=None, description="Offending dependency")
    cycle: list[TaskRef] = Field(default_factory=list)

    @property
    def message(self) -> str:
        """Human-readable description."""
        if self.kind == ViolationKind.SELF_DEPENDENCY:
            return f"Task {self.entity} depends on itself"
        if self.kind == ViolationKind.DUPLICATE_DEPENDENCY:
            return f"Task {self.entity} lists dependency {self.ref} more than once"
        if self.kind == ViolationKind.MISSING_DEPENDENCY:
            return f"Task {self.entity} depends on missing task {self.ref}"
        path = " -> ".join(str(ref) for ref in self.cycle)
        return f"Circular dependency: {path}"


class RepairAction(BaseModel):
    """One dependency entry removed while repairing a collection."""

    model_config = ConfigDict(frozen=True)

    entity: TaskRef = Field(description="Item whose dependency list changed")
    removed_ref: TaskRef = Field(description="Dependency that was removed")
    reason: ViolationKind


class DependencyChange(BaseModel):
    """Dependencies stripped from one item by a cascading operation."""

    entity: TaskRef
    removed_refs: list[TaskRef] = Field(default_factory=list)


class RemovalSummary(BaseModel):
    """Explicit diff of a cascading removal.

    Attributes:
        removed: The removed task or subtask (None when clearing subtasks).
        removed_refs: Every ref that no longer exists.
        touched: Items elsewhere whose dependency lists were edited.
    """

    removed: Task | Subtask | None = None
    removed_refs: list[TaskRef] = Field(default_factory=list)
    touched: list[DependencyChange] = Field(default_factory=list)

    @property
    def touched_refs(self) -> list[TaskRef]:
        """Get refs of every item whose dependencies were edited."""
        return [change.entity for change in self.touched]


class NextTaskResult(BaseModel):
    """Result of next-task selection."""

    item: Task | Subtask | None = None
    ref: TaskRef | None = None
    outcome: SelectionOutcome

    @property
    def found(self) -> bool:
        """Check if an eligible item was selected."""
        return self.item is not None
