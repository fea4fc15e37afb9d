"""Task identifier parsing and resolution.

Tasks are addressed as ``N`` and subtasks as ``N.M`` (parent id, subtask id).
This module owns that textual scheme: it turns tokens into typed
:class:`TaskRef` values, formats them back, and resolves them against a
task collection. Everything else in the package works on ``TaskRef`` only.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from taskgraph.core.errors import (
    InvalidIdFormatError,
    ParentNotFoundError,
    TaskNotFoundError,
)

if TYPE_CHECKING:
    from taskgraph.dependencies.models import Subtask, Task, TaskCollection

ID_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


class TaskRef(BaseModel):
    """Reference to a task (``N``) or a subtask (``N.M``).

    A ref with ``subtask_id`` set is a composite subtask reference; without it
    the ref names a top-level task. The two forms never alias each other.

    Persisted form is an integer for tasks and
    ``{"parentId": N, "subtaskId": M}`` for subtasks. On input, the string
    forms ``"N"`` and ``"N.M"`` are accepted as well.

    Example:
        >>> TaskRef(task_id=4, subtask_id=1)
        TaskRef('4.1')
        >>> str(TaskRef.model_validate(7))
        '7'
    """

    model_config = ConfigDict(frozen=True)

    task_id: int = Field(ge=0, description="Top-level task id (parent for subtasks)")
    subtask_id: int | None = Field(
        default=None,
        ge=0,
        description="Subtask id within the parent, None for plain task refs",
    )

    @model_validator(mode="before")
    @classmethod
    def coerce_input(cls, value: Any) -> Any:
        """Accept ints, ``N``/``N.M`` strings and persisted subtask objects."""
        if isinstance(value, TaskRef):
            return {"task_id": value.task_id, "subtask_id": value.subtask_id}
        if isinstance(value, bool):
            raise ValueError("boolean is not a task id")
        if isinstance(value, int):
            return {"task_id": value}
        if isinstance(value, str):
            return _split_token(value)
        if isinstance(value, dict) and "parentId" in value:
            # The object form always names a subtask; plain task refs are ints.
            if value.get("subtaskId") is None:
                raise ValueError(f"subtask reference {value!r} is missing subtaskId")
            return {"task_id": value["parentId"], "subtask_id": value["subtaskId"]}
        return value

    @model_serializer
    def serialize(self) -> int | dict[str, int]:
        """Serialize to the persisted document form."""
        if self.subtask_id is None:
            return self.task_id
        return {"parentId": self.task_id, "subtaskId": self.subtask_id}

    @property
    def is_subtask(self) -> bool:
        """Check if this ref addresses a subtask."""
        return self.subtask_id is not None

    @property
    def parent(self) -> TaskRef:
        """Get the ref of the owning top-level task (itself for plain refs)."""
        if self.subtask_id is None:
            return self
        return TaskRef(task_id=self.task_id)

    @property
    def sort_key(self) -> tuple[int, int]:
        """Canonical ordering: task id, then plain before composite, then subtask id."""
        return (self.task_id, -1 if self.subtask_id is None else self.subtask_id)

    def __str__(self) -> str:
        return format_task_ref(self)

    def __repr__(self) -> str:
        return f"TaskRef('{self}')"


def _split_token(token: str) -> dict[str, int | None]:
    """Split a token into TaskRef fields. Surrounding whitespace is an error."""
    if not ID_PATTERN.fullmatch(token):
        raise ValueError(f"invalid task id {token!r}, expected 'N' or 'N.M'")
    if "." in token:
        task_part, subtask_part = token.split(".", 1)
        return {"task_id": int(task_part), "subtask_id": int(subtask_part)}
    return {"task_id": int(token), "subtask_id": None}


# =============================================================================
# PARSING AND FORMATTING
# =============================================================================


def parse_task_ref(token: str | int | TaskRef) -> TaskRef:
    """
    Parse an identifier token into a TaskRef.

    Args:
        token: ``"N"``, ``"N.M"``, a non-negative int, or an existing TaskRef.

    Returns:
        The typed reference.

    Raises:
        InvalidIdFormatError: If the token does not match the id grammar.

    Example:
        >>> parse_task_ref("5.2")
        TaskRef('5.2')
    """
    if isinstance(token, TaskRef):
        return token
    if isinstance(token, bool):
        raise InvalidIdFormatError(token)
    if isinstance(token, int):
        if token < 0:
            raise InvalidIdFormatError(token)
        return TaskRef(task_id=token)
    if not isinstance(token, str):
        raise InvalidIdFormatError(token)

    try:
        fields = _split_token(token)
    except ValueError as e:
        raise InvalidIdFormatError(token) from e
    return TaskRef(**fields)


def parse_task_refs(tokens: str) -> list[TaskRef]:
    """
    Parse a comma-separated list of identifiers.

    Empty segments are ignored, so trailing commas are harmless.

    Raises:
        InvalidIdFormatError: If any segment is malformed or the list is empty.
    """
    parts = [part.strip() for part in tokens.split(",")]
    refs = [parse_task_ref(part) for part in parts if part]
    if not refs:
        raise InvalidIdFormatError(tokens, "No task IDs given")
    return refs


def format_task_ref(ref: TaskRef) -> str:
    """Format a TaskRef as ``N`` or ``N.M``."""
    if ref.subtask_id is None:
        return str(ref.task_id)
    return f"{ref.task_id}.{ref.subtask_id}"


# Public name used by collaborators: token in, typed ref out.
resolve = parse_task_ref


# =============================================================================
# RESOLUTION AGAINST A COLLECTION
# =============================================================================


def find_entity(
    collection: TaskCollection,
    ref: TaskRef | str | int,
) -> Task | Subtask | None:
    """
    Look up the task or subtask a reference points to.

    Args:
        collection: Collection to search.
        ref: Reference or identifier token.

    Returns:
        The entity, or None if it does not exist.
    """
    ref = parse_task_ref(ref)
    task = collection.get_task(ref.task_id)
    if task is None or ref.subtask_id is None:
        return task
    return task.get_subtask(ref.subtask_id)


def resolve_entity(
    collection: TaskCollection,
    ref: TaskRef | str | int,
) -> Task | Subtask:
    """
    Resolve a reference, raising if it does not exist.

    Raises:
        InvalidIdFormatError: If ``ref`` is a malformed token.
        ParentNotFoundError: If a subtask ref names a missing parent task.
        TaskNotFoundError: If the task or subtask does not exist.
    """
    ref = parse_task_ref(ref)
    task = collection.get_task(ref.task_id)
    if ref.subtask_id is None:
        if task is None:
            raise TaskNotFoundError(ref)
        return task

    if task is None:
        raise ParentNotFoundError(ref, ref.task_id)
    subtask = task.get_subtask(ref.subtask_id)
    if subtask is None:
        raise TaskNotFoundError(ref, f"Subtask {ref} not found in task {ref.task_id}")
    return subtask
