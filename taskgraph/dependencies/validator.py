"""Dependency validation.

Finds every breach of the dependency invariants in a task collection:
self-dependencies, duplicate entries, references to missing items and
cycles. Validation is read-only and never raises on a loaded collection;
problems come back as data.
"""

from collections import Counter
from typing import Any

from loguru import logger

from taskgraph.dependencies.graph import DependencyGraph, build_graph
from taskgraph.dependencies.identifiers import TaskRef
from taskgraph.dependencies.models import (
    TaskCollection,
    Violation,
    ViolationKind,
    WorkItem,
)

# =============================================================================
# VALIDATION REPORT
# =============================================================================


class ValidationReport:
    """Violations found in one collection, with summary helpers."""

    def __init__(self, violations: list[Violation]):
        self.violations = violations

    @property
    def is_valid(self) -> bool:
        """Check if no violations were found."""
        return not self.violations

    def of_kind(self, kind: ViolationKind) -> list[Violation]:
        """Get violations of one kind, in report order."""
        return [v for v in self.violations if v.kind == kind]

    @property
    def counts(self) -> dict[ViolationKind, int]:
        """Get number of violations per kind."""
        return dict(Counter(v.kind for v in self.violations))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.is_valid,
            "counts": {kind.value: n for kind, n in self.counts.items()},
            "violations": [
                {"kind": v.kind.value, "message": v.message}
                for v in self.violations
            ],
        }


# =============================================================================
# CHECKS
# =============================================================================


def _check_entity(
    ref: TaskRef,
    entity: WorkItem,
    graph: DependencyGraph,
) -> list[Violation]:
    """Run node-local checks for one item: self, duplicates, then dangling."""
    violations: list[Violation] = []
    deps = entity.dependencies

    if ref in deps:
        violations.append(
            Violation(kind=ViolationKind.SELF_DEPENDENCY, entity=ref, ref=ref)
        )

    counts = Counter(deps)
    for dep in dict.fromkeys(deps):
        if dep == ref:
            continue
        for _ in range(counts[dep] - 1):
            violations.append(
                Violation(kind=ViolationKind.DUPLICATE_DEPENDENCY, entity=ref, ref=dep)
            )

    for dep in dict.fromkeys(deps):
        if dep != ref and not graph.contains(dep):
            violations.append(
                Violation(kind=ViolationKind.MISSING_DEPENDENCY, entity=ref, ref=dep)
            )

    return violations


def validate(collection: TaskCollection) -> list[Violation]:
    """
    Find all dependency violations in a collection.

    Node-local violations come first, in document order (each task followed
    by its subtasks); cycles follow, each reported once starting at its
    lowest id.

    Args:
        collection: Collection to inspect. It is not modified.

    Returns:
        List of violations, empty if the collection is consistent.

    Example:
        >>> [v.kind.value for v in validate(collection)]
        ['duplicate_dependency', 'missing_dependency']
    """
    graph = build_graph(collection)
    violations: list[Violation] = []

    for ref, entity in collection.iter_entities():
        violations.extend(_check_entity(ref, entity, graph))

    for cycle in graph.detect_cycles():
        violations.append(Violation(kind=ViolationKind.CYCLE, cycle=cycle))

    if violations:
        logger.debug(f"Validation found {len(violations)} violations")
    else:
        logger.debug("Validation found no dependency violations")

    return violations


def validate_report(collection: TaskCollection) -> ValidationReport:
    """Validate and wrap the result in a ValidationReport."""
    return ValidationReport(validate(collection))
