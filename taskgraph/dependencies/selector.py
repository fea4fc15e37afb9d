"""Next-task selection.

An item is eligible when it is not done or cancelled and every one of its
dependencies resolves to a ``done`` item. Among eligible items the most
urgent priority wins, then the lowest id.
"""

from loguru import logger

from taskgraph.dependencies.identifiers import TaskRef, find_entity
from taskgraph.dependencies.models import (
    NextTaskResult,
    SelectionOutcome,
    TaskCollection,
    TaskStatus,
    WorkItem,
)


def is_ready(collection: TaskCollection, entity: WorkItem) -> bool:
    """
    Check if all of an item's dependencies are done.

    A dependency that does not resolve is never satisfied.
    """
    for dep in entity.dependencies:
        target = find_entity(collection, dep)
        if target is None or target.status != TaskStatus.DONE:
            return False
    return True


def _open_candidates(
    collection: TaskCollection,
    include_subtasks: bool,
) -> list[tuple[TaskRef, WorkItem, bool]]:
    """Collect (ref, item, eligible) for every open item in scope.

    With subtasks included, a task that still has open subtasks is
    represented by them; they also need the parent's dependencies done.
    """
    candidates: list[tuple[TaskRef, WorkItem, bool]] = []
    for task in collection.tasks:
        if task.is_terminal:
            continue
        task_ready = is_ready(collection, task)

        open_subtasks = [s for s in task.subtasks if not s.is_terminal]
        if not include_subtasks or not open_subtasks:
            candidates.append((task.ref, task, task_ready))
            continue

        for subtask in open_subtasks:
            ready = task_ready and is_ready(collection, subtask)
            candidates.append((task.subtask_ref(subtask), subtask, ready))

    return candidates


def next_task(
    collection: TaskCollection,
    include_subtasks: bool = False,
) -> NextTaskResult:
    """
    Select the next item to work on.

    Args:
        collection: Collection to inspect. It is not modified.
        include_subtasks: Offer subtasks instead of their owning task.

    Returns:
        NextTaskResult. When nothing is eligible, ``item`` is None and
        ``outcome`` tells whether everything is finished or blocked.

    Example:
        >>> result = next_task(collection)
        >>> result.outcome, str(result.ref)
        (<SelectionOutcome.AVAILABLE: 'available'>, '2')
    """
    candidates = _open_candidates(collection, include_subtasks)
    if not candidates:
        logger.debug("All tasks are done or cancelled")
        return NextTaskResult(outcome=SelectionOutcome.ALL_COMPLETE)

    eligible = [(ref, item) for ref, item, ready in candidates if ready]
    if not eligible:
        logger.debug(f"All {len(candidates)} open items have unmet dependencies")
        return NextTaskResult(outcome=SelectionOutcome.ALL_BLOCKED)

    ref, item = min(eligible, key=lambda pair: (pair[1].priority.rank, pair[0].sort_key))
    logger.debug(f"Next task is {ref} out of {len(eligible)} eligible items")
    return NextTaskResult(item=item, ref=ref, outcome=SelectionOutcome.AVAILABLE)
