"""Deterministic repair of dependency violations.

Repair runs on a copy of the collection and only ever removes entries from
``dependencies`` lists. The passes run in a fixed order:

1. drop self-dependencies
2. drop references to missing tasks or subtasks
3. drop duplicate entries, keeping the first occurrence
4. break cycles, one edge at a time

Running :func:`fix` on its own output is a no-op.
"""

from loguru import logger

from taskgraph.dependencies.graph import build_graph
from taskgraph.dependencies.identifiers import TaskRef, find_entity
from taskgraph.dependencies.models import (
    RepairAction,
    TaskCollection,
    ViolationKind,
)


def _drop_self_dependencies(collection: TaskCollection) -> list[RepairAction]:
    actions: list[RepairAction] = []
    for ref, entity in collection.iter_entities():
        kept = [dep for dep in entity.dependencies if dep != ref]
        for _ in range(len(entity.dependencies) - len(kept)):
            actions.append(
                RepairAction(
                    entity=ref,
                    removed_ref=ref,
                    reason=ViolationKind.SELF_DEPENDENCY,
                )
            )
        entity.dependencies = kept
    return actions


def _drop_missing_dependencies(collection: TaskCollection) -> list[RepairAction]:
    existing = set(collection.refs())
    actions: list[RepairAction] = []
    for ref, entity in collection.iter_entities():
        kept: list[TaskRef] = []
        for dep in entity.dependencies:
            if dep in existing:
                kept.append(dep)
            else:
                actions.append(
                    RepairAction(
                        entity=ref,
                        removed_ref=dep,
                        reason=ViolationKind.MISSING_DEPENDENCY,
                    )
                )
        entity.dependencies = kept
    return actions


def _drop_duplicate_dependencies(collection: TaskCollection) -> list[RepairAction]:
    actions: list[RepairAction] = []
    for ref, entity in collection.iter_entities():
        seen: set[TaskRef] = set()
        kept: list[TaskRef] = []
        for dep in entity.dependencies:
            if dep in seen:
                actions.append(
                    RepairAction(
                        entity=ref,
                        removed_ref=dep,
                        reason=ViolationKind.DUPLICATE_DEPENDENCY,
                    )
                )
                continue
            seen.add(dep)
            kept.append(dep)
        entity.dependencies = kept
    return actions


def _break_cycles(collection: TaskCollection) -> list[RepairAction]:
    """Remove one edge per detected cycle until the graph is acyclic.

    The removed edge is the one leaving the cycle member with the highest
    canonical id.
    """
    actions: list[RepairAction] = []
    while True:
        cycles = build_graph(collection).detect_cycles()
        if not cycles:
            return actions

        cycle = cycles[0]
        members = cycle[:-1]
        index = max(range(len(members)), key=lambda i: members[i].sort_key)
        dependent, dependency = cycle[index], cycle[index + 1]

        entity = find_entity(collection, dependent)
        # Earlier passes leave exactly one entry per dependency.
        entity.dependencies = [d for d in entity.dependencies if d != dependency]
        actions.append(
            RepairAction(
                entity=dependent,
                removed_ref=dependency,
                reason=ViolationKind.CYCLE,
            )
        )
        logger.debug(f"Broke cycle by removing {dependent} -> {dependency}")


def fix(collection: TaskCollection) -> tuple[TaskCollection, list[RepairAction]]:
    """
    Repair every dependency violation in a collection.

    Args:
        collection: Collection to repair. It is not modified.

    Returns:
        Tuple of (repaired copy, actions taken). No action means the input
        was already consistent.

    Example:
        >>> fixed, actions = fix(collection)
        >>> [(str(a.entity), str(a.removed_ref)) for a in actions]
        [('5', '99'), ('5', '2')]
    """
    repaired = collection.model_copy(deep=True)

    actions: list[RepairAction] = []
    actions.extend(_drop_self_dependencies(repaired))
    actions.extend(_drop_missing_dependencies(repaired))
    actions.extend(_drop_duplicate_dependencies(repaired))
    actions.extend(_break_cycles(repaired))

    if actions:
        logger.info(f"Repaired {len(actions)} dependency issues")
    else:
        logger.debug("No dependency issues to repair")

    return repaired, actions
