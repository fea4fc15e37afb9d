"""Dependency-preserving edits to a task collection.

Every operation takes the caller's collection, works on a deep copy and
returns the edited copy together with a result. On any error the exception
propagates and the caller's collection is left exactly as it was.
"""

from collections.abc import Iterable, Sequence

from loguru import logger

from taskgraph.core.errors import (
    DuplicateDependencyError,
    InvalidIdFormatError,
    InvalidOperationError,
    InvalidStatusError,
    ParentNotFoundError,
    SelfDependencyError,
    WouldCreateCycleError,
)
from taskgraph.dependencies.graph import build_graph
from taskgraph.dependencies.identifiers import (
    TaskRef,
    find_entity,
    parse_task_ref,
    resolve_entity,
)
from taskgraph.dependencies.models import (
    DependencyChange,
    RemovalSummary,
    Subtask,
    Task,
    TaskCollection,
    TaskPriority,
    TaskStatus,
)

IdLike = str | int | TaskRef

# =============================================================================
# HELPERS
# =============================================================================


def _coerce_status(status: str | TaskStatus) -> TaskStatus:
    try:
        return TaskStatus(status)
    except ValueError as e:
        raise InvalidStatusError(str(status), [s.value for s in TaskStatus]) from e


def _coerce_priority(priority: str | TaskPriority) -> TaskPriority:
    try:
        return TaskPriority(priority)
    except ValueError as e:
        allowed = ", ".join(p.value for p in TaskPriority)
        raise InvalidOperationError(
            f"Invalid priority {priority!r}. Valid priorities: {allowed}"
        ) from e


def _require_subtask_ref(token: IdLike) -> TaskRef:
    ref = parse_task_ref(token)
    if not ref.is_subtask:
        raise InvalidIdFormatError(
            token,
            f"Subtask ID {token!r} must be in format 'parentId.subtaskId'",
        )
    return ref


def _require_task_ref(token: IdLike) -> TaskRef:
    ref = parse_task_ref(token)
    if ref.is_subtask:
        raise InvalidIdFormatError(
            token,
            f"Task ID {token!r} must be a top-level task id",
        )
    return ref


def _require_parent(collection: TaskCollection, token: IdLike) -> Task:
    ref = _require_task_ref(token)
    parent = collection.get_task(ref.task_id)
    if parent is None:
        raise ParentNotFoundError(None, ref.task_id)
    return parent


def strip_references(
    collection: TaskCollection,
    refs: Iterable[TaskRef],
) -> list[DependencyChange]:
    """
    Remove every dependency entry pointing at any of ``refs``.

    Edits ``collection`` in place; callers pass their working copy.

    Returns:
        One DependencyChange per item whose list was edited.
    """
    targets = set(refs)
    changes: list[DependencyChange] = []
    for ref, entity in collection.iter_entities():
        removed = [dep for dep in entity.dependencies if dep in targets]
        if not removed:
            continue
        entity.dependencies = [d for d in entity.dependencies if d not in targets]
        changes.append(DependencyChange(entity=ref, removed_refs=removed))
    return changes


def rewrite_references(
    collection: TaskCollection,
    old: TaskRef,
    new: TaskRef,
) -> list[TaskRef]:
    """
    Point every dependency on ``old`` at ``new`` instead, in place.

    An entry that would repeat ``new`` in the same list is dropped, keeping
    the first occurrence.

    Returns:
        Refs of the items that were rewritten.
    """
    rewritten: list[TaskRef] = []
    for ref, entity in collection.iter_entities():
        if old not in entity.dependencies:
            continue
        deps: list[TaskRef] = []
        for dep in entity.dependencies:
            if dep == old:
                dep = new
            if dep == new and new in deps:
                continue
            deps.append(dep)
        entity.dependencies = deps
        rewritten.append(ref)
    return rewritten


def _drop_stale_references(collection: TaskCollection, new_ref: TaskRef) -> None:
    """Strip entries naming a freshly allocated id.

    Any such entry predates the allocation, so it was dangling and must not
    resolve to the new item.
    """
    for change in strip_references(collection, [new_ref]):
        logger.debug(f"Dropped dangling reference {new_ref} from {change.entity}")


# =============================================================================
# DEPENDENCY EDGES
# =============================================================================


def add_dependency(
    collection: TaskCollection,
    task_id: IdLike,
    depends_on_id: IdLike,
) -> TaskCollection:
    """
    Add a dependency edge, refusing anything that breaks an invariant.

    Args:
        collection: Collection to edit. It is not modified.
        task_id: Dependent task or subtask.
        depends_on_id: Task or subtask that must be completed first.

    Returns:
        Edited copy of the collection.

    Raises:
        InvalidIdFormatError: If either id is malformed.
        TaskNotFoundError: If either id does not resolve.
        SelfDependencyError: If both ids are the same.
        DuplicateDependencyError: If the dependency already exists.
        WouldCreateCycleError: If the edge would close a cycle.

    Example:
        >>> updated = add_dependency(collection, "3", "2.1")
        >>> [str(d) for d in find_entity(updated, 3).dependencies]
        ['2.1']
    """
    ref = parse_task_ref(task_id)
    dep = parse_task_ref(depends_on_id)
    entity = resolve_entity(collection, ref)
    resolve_entity(collection, dep)

    if ref == dep:
        raise SelfDependencyError(ref)
    if dep in entity.dependencies:
        raise DuplicateDependencyError(ref, dep)

    # The new edge ref -> dep closes a cycle iff dep already reaches ref.
    path = build_graph(collection).find_path(dep, ref)
    if path is not None:
        raise WouldCreateCycleError([ref, *path])

    updated = collection.model_copy(deep=True)
    find_entity(updated, ref).dependencies.append(dep)

    logger.info(f"Added dependency {ref} -> {dep}")
    return updated


def remove_dependency(
    collection: TaskCollection,
    task_id: IdLike,
    depends_on_id: IdLike,
) -> TaskCollection:
    """
    Remove a dependency edge.

    Removing a dependency that is not present is a successful no-op.

    Raises:
        InvalidIdFormatError: If either id is malformed.
        TaskNotFoundError: If ``task_id`` does not resolve.
    """
    ref = parse_task_ref(task_id)
    dep = parse_task_ref(depends_on_id)
    entity = resolve_entity(collection, ref)

    updated = collection.model_copy(deep=True)
    if dep not in entity.dependencies:
        logger.debug(f"Task {ref} does not depend on {dep}, nothing to remove")
        return updated

    target = find_entity(updated, ref)
    target.dependencies = [d for d in target.dependencies if d != dep]

    logger.info(f"Removed dependency {ref} -> {dep}")
    return updated


# =============================================================================
# REMOVAL
# =============================================================================


def remove_task(
    collection: TaskCollection,
    id_token: IdLike,
) -> tuple[TaskCollection, RemovalSummary]:
    """
    Remove a task or subtask and every edge that pointed at it.

    Removing a task also removes all of its subtasks. A dotted id is
    handled by :func:`remove_subtask`.

    Returns:
        Tuple of (edited copy, summary of what was removed and touched).

    Raises:
        InvalidIdFormatError: If the id is malformed.
        TaskNotFoundError: If the task or subtask does not exist.
    """
    ref = parse_task_ref(id_token)
    if ref.is_subtask:
        return remove_subtask(collection, ref)

    resolve_entity(collection, ref)
    updated = collection.model_copy(deep=True)
    task = updated.get_task(ref.task_id)
    updated.tasks.remove(task)

    removed_refs = [ref, *(task.subtask_ref(s) for s in task.subtasks)]
    touched = strip_references(updated, removed_refs)

    logger.info(
        f"Removed task {ref} with {len(task.subtasks)} subtasks; "
        f"updated dependencies of {len(touched)} items"
    )
    return updated, RemovalSummary(removed=task, removed_refs=removed_refs, touched=touched)


def remove_subtask(
    collection: TaskCollection,
    id_token: IdLike,
) -> tuple[TaskCollection, RemovalSummary]:
    """
    Remove a subtask and every edge that pointed at it.

    Raises:
        InvalidIdFormatError: If the id is not in ``parentId.subtaskId`` form.
        ParentNotFoundError: If the parent task does not exist.
        TaskNotFoundError: If the subtask does not exist.
    """
    ref = _require_subtask_ref(id_token)
    resolve_entity(collection, ref)

    updated = collection.model_copy(deep=True)
    parent = updated.get_task(ref.task_id)
    subtask = parent.get_subtask(ref.subtask_id)
    parent.subtasks.remove(subtask)

    touched = strip_references(updated, [ref])

    logger.info(f"Removed subtask {ref}; updated dependencies of {len(touched)} items")
    return updated, RemovalSummary(removed=subtask, removed_refs=[ref], touched=touched)


def clear_subtasks(
    collection: TaskCollection,
    task_ids: Sequence[IdLike],
) -> tuple[TaskCollection, RemovalSummary]:
    """
    Remove all subtasks of the given tasks.

    All ids are checked before anything changes.

    Raises:
        InvalidIdFormatError: If an id is malformed or names a subtask.
        TaskNotFoundError: If a task does not exist.
    """
    refs = [_require_task_ref(token) for token in task_ids]
    for ref in refs:
        resolve_entity(collection, ref)

    updated = collection.model_copy(deep=True)
    removed_refs: list[TaskRef] = []
    for ref in dict.fromkeys(refs):
        task = updated.get_task(ref.task_id)
        removed_refs.extend(task.subtask_ref(s) for s in task.subtasks)
        task.subtasks = []

    touched = strip_references(updated, removed_refs)

    logger.info(f"Cleared {len(removed_refs)} subtasks from {len(refs)} tasks")
    return updated, RemovalSummary(removed_refs=removed_refs, touched=touched)


# =============================================================================
# CONVERSION
# =============================================================================


def convert_subtask_to_task(
    collection: TaskCollection,
    id_token: IdLike,
) -> tuple[TaskCollection, Task]:
    """
    Promote a subtask to a standalone top-level task.

    The new task gets the next unused task id and keeps the subtask's
    content and dependencies. Every dependency on the old ``N.M`` ref is
    rewritten to the new task id.

    Returns:
        Tuple of (edited copy, the new task).

    Raises:
        InvalidIdFormatError: If the id is not in ``parentId.subtaskId`` form.
        ParentNotFoundError: If the parent task does not exist.
        TaskNotFoundError: If the subtask does not exist.
    """
    ref = _require_subtask_ref(id_token)
    resolve_entity(collection, ref)

    updated = collection.model_copy(deep=True)
    parent = updated.get_task(ref.task_id)
    subtask = parent.get_subtask(ref.subtask_id)
    parent.subtasks.remove(subtask)

    data = subtask.model_dump()
    data["id"] = updated.next_task_id()
    new_task = Task.model_validate(data)
    updated.tasks.append(new_task)

    _drop_stale_references(updated, new_task.ref)
    rewritten = rewrite_references(updated, ref, new_task.ref)

    logger.info(
        f"Converted subtask {ref} to task {new_task.id}; "
        f"rewrote references in {len(rewritten)} items"
    )
    return updated, new_task


def convert_task_to_subtask(
    collection: TaskCollection,
    parent_id: IdLike,
    task_id: IdLike,
) -> tuple[TaskCollection, Subtask]:
    """
    Move a top-level task under another task as a subtask.

    Every dependency on the old task id is rewritten to the new ``N.M`` ref.

    Raises:
        InvalidIdFormatError: If either id is not a top-level task id.
        ParentNotFoundError: If the parent task does not exist.
        TaskNotFoundError: If the task to convert does not exist.
        InvalidOperationError: If the task is the parent itself or owns subtasks.
    """
    parent_ref = _require_task_ref(parent_id)
    ref = _require_task_ref(task_id)
    _require_parent(collection, parent_ref)
    task = resolve_entity(collection, ref)

    if ref == parent_ref:
        raise InvalidOperationError(f"Task {ref} cannot become a subtask of itself")
    if task.subtasks:
        raise InvalidOperationError(
            f"Task {ref} has {len(task.subtasks)} subtasks and cannot become a subtask"
        )

    updated = collection.model_copy(deep=True)
    moved = updated.get_task(ref.task_id)
    updated.tasks.remove(moved)
    parent = updated.get_task(parent_ref.task_id)

    data = moved.model_dump(exclude={"subtasks"})
    data["id"] = parent.next_subtask_id()
    subtask = Subtask.model_validate(data)
    parent.subtasks.append(subtask)

    new_ref = parent.subtask_ref(subtask)
    _drop_stale_references(updated, new_ref)
    rewritten = rewrite_references(updated, ref, new_ref)

    logger.info(
        f"Converted task {ref} to subtask {new_ref}; "
        f"rewrote references in {len(rewritten)} items"
    )
    return updated, subtask


# =============================================================================
# CREATION AND STATUS
# =============================================================================


def _check_new_dependencies(
    collection: TaskCollection,
    new_ref: TaskRef,
    dependencies: Sequence[IdLike],
) -> list[TaskRef]:
    """Parse and check the dependency list of an item being created.

    A brand-new item has no dependents, so it cannot close a cycle.
    """
    deps: list[TaskRef] = []
    for token in dependencies:
        dep = parse_task_ref(token)
        if dep == new_ref:
            raise SelfDependencyError(new_ref)
        if dep in deps:
            raise DuplicateDependencyError(new_ref, dep)
        resolve_entity(collection, dep)
        deps.append(dep)
    return deps


def add_task(
    collection: TaskCollection,
    *,
    title: str,
    description: str = "",
    details: str = "",
    test_strategy: str = "",
    status: str | TaskStatus = TaskStatus.PENDING,
    priority: str | TaskPriority = TaskPriority.MEDIUM,
    dependencies: Sequence[IdLike] = (),
) -> tuple[TaskCollection, Task]:
    """
    Create a top-level task with the next unused id.

    Args:
        collection: Collection to edit. It is not modified.
        title: Task title.
        description: What needs doing.
        details: Implementation notes.
        test_strategy: How completion is verified.
        status: Initial status.
        priority: Task priority.
        dependencies: Ids the task depends on; each must resolve, once.

    Returns:
        Tuple of (edited copy, the new task).

    Raises:
        InvalidIdFormatError: If a dependency id is malformed.
        TaskNotFoundError: If a dependency does not resolve.
        DuplicateDependencyError: If a dependency is listed twice.
        InvalidStatusError: If the status is unknown.
        InvalidOperationError: If the priority is unknown.

    Example:
        >>> updated, task = add_task(collection, title="Docs", dependencies=["2.1"])
        >>> task.id
        4
    """
    new_ref = TaskRef(task_id=collection.next_task_id())
    status = _coerce_status(status)
    priority = _coerce_priority(priority)
    deps = _check_new_dependencies(collection, new_ref, dependencies)

    updated = collection.model_copy(deep=True)
    _drop_stale_references(updated, new_ref)
    task = Task(
        id=new_ref.task_id,
        title=title,
        description=description,
        details=details,
        test_strategy=test_strategy,
        status=status,
        priority=priority,
        dependencies=deps,
    )
    updated.tasks.append(task)

    logger.info(f"Added task {new_ref} with {len(deps)} dependencies")
    return updated, task


def add_subtask(
    collection: TaskCollection,
    parent_id: IdLike,
    *,
    title: str,
    description: str = "",
    details: str = "",
    test_strategy: str = "",
    status: str | TaskStatus = TaskStatus.PENDING,
    priority: str | TaskPriority = TaskPriority.MEDIUM,
    dependencies: Sequence[IdLike] = (),
) -> tuple[TaskCollection, Subtask]:
    """
    Create a subtask under a parent task.

    The subtask gets the next unused id within the parent. Its dependencies
    must all resolve and be distinct.

    Raises:
        ParentNotFoundError: If the parent task does not exist.
        InvalidIdFormatError: If an id is malformed.
        TaskNotFoundError: If a dependency does not resolve.
        DuplicateDependencyError: If a dependency is listed twice.
        InvalidStatusError: If the status is unknown.
        InvalidOperationError: If the priority is unknown.
    """
    parent = _require_parent(collection, parent_id)
    new_ref = TaskRef(task_id=parent.id, subtask_id=parent.next_subtask_id())
    status = _coerce_status(status)
    priority = _coerce_priority(priority)
    deps = _check_new_dependencies(collection, new_ref, dependencies)

    updated = collection.model_copy(deep=True)
    _drop_stale_references(updated, new_ref)
    subtask = Subtask(
        id=new_ref.subtask_id,
        title=title,
        description=description,
        details=details,
        test_strategy=test_strategy,
        status=status,
        priority=priority,
        dependencies=deps,
    )
    updated.get_task(parent.id).subtasks.append(subtask)

    logger.info(f"Added subtask {new_ref} with {len(deps)} dependencies")
    return updated, subtask


def set_status(
    collection: TaskCollection,
    task_ids: Sequence[IdLike],
    status: str | TaskStatus,
) -> tuple[TaskCollection, list[TaskRef]]:
    """
    Set the status of one or more tasks or subtasks.

    Marking a task ``done`` marks all of its subtasks ``done`` as well. All
    ids are resolved before anything changes.

    Returns:
        Tuple of (edited copy, refs whose status was written).

    Raises:
        InvalidStatusError: If the status is unknown.
        InvalidIdFormatError: If an id is malformed.
        TaskNotFoundError: If an id does not resolve.
    """
    new_status = _coerce_status(status)
    refs = [parse_task_ref(token) for token in task_ids]
    if not refs:
        raise InvalidIdFormatError("", "No task IDs given")
    for ref in refs:
        resolve_entity(collection, ref)

    updated = collection.model_copy(deep=True)
    changed: list[TaskRef] = []
    for ref in dict.fromkeys(refs):
        entity = find_entity(updated, ref)
        entity.status = new_status
        changed.append(ref)
        if isinstance(entity, Task) and new_status == TaskStatus.DONE:
            for subtask in entity.subtasks:
                subtask.status = TaskStatus.DONE
                changed.append(entity.subtask_ref(subtask))

    logger.info(f"Set status of {len(refs)} items to {new_status.value}")
    return updated, list(dict.fromkeys(changed))
