"""Dependency graph construction and traversal.

The graph is a read-only view built fresh from a task collection on every
call. Nodes are all tasks and subtasks; edges point from a dependent item to
each of its dependencies. Dangling targets and self-loops are kept out of the
traversals here: the validator reports those separately.
"""

from collections import deque
from collections.abc import Iterator

from loguru import logger

from taskgraph.dependencies.identifiers import TaskRef
from taskgraph.dependencies.models import TaskCollection, WorkItem


class DependencyGraph:
    """
    Directed dependency graph over tasks and subtasks.

    Example:
        >>> graph = build_graph(collection)
        >>> graph.detect_cycles()
        [[TaskRef('1'), TaskRef('2'), TaskRef('1')]]
        >>> graph.find_path(TaskRef(task_id=1), TaskRef(task_id=2))
        [TaskRef('1'), TaskRef('2')]
    """

    def __init__(self) -> None:
        self.nodes: dict[TaskRef, WorkItem] = {}
        self.edges: dict[TaskRef, list[TaskRef]] = {}

    def add_entity(self, ref: TaskRef, entity: WorkItem) -> None:
        """Add an item and its raw dependency list."""
        self.nodes[ref] = entity
        self.edges[ref] = list(entity.dependencies)

    def contains(self, ref: TaskRef) -> bool:
        """Check if a ref resolves to a node."""
        return ref in self.nodes

    def get_entity(self, ref: TaskRef) -> WorkItem | None:
        """Get the item behind a ref."""
        return self.nodes.get(ref)

    def get_dependents(self, ref: TaskRef) -> list[TaskRef]:
        """Get items that depend directly on ``ref``."""
        return [node for node, deps in self.edges.items() if ref in deps]

    def successors(self, ref: TaskRef) -> list[TaskRef]:
        """Get traversable dependencies of a node.

        Skips self-loops, dangling targets and repeated entries.
        """
        seen: set[TaskRef] = set()
        result: list[TaskRef] = []
        for dep in self.edges.get(ref, []):
            if dep == ref or dep not in self.nodes or dep in seen:
                continue
            seen.add(dep)
            result.append(dep)
        return result

    # =========================================================================
    # CYCLE DETECTION
    # =========================================================================

    def detect_cycles(self) -> list[list[TaskRef]]:
        """
        Detect cycles using DFS with an explicit stack.

        Roots and neighbours are visited in canonical id order so the output
        is deterministic. Each cycle is returned once, rotated to start at its
        lowest id and closed by repeating that id. Chain depth is not bounded
        by the interpreter's recursion limit.

        Returns:
            List of cycle paths, empty if the graph is acyclic.

        Example:
            >>> graph.detect_cycles()
            [[TaskRef('1'), TaskRef('3'), TaskRef('2'), TaskRef('1')]]
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        colors: dict[TaskRef, int] = {node: WHITE for node in self.nodes}
        cycles: list[list[TaskRef]] = []
        seen: set[tuple[TaskRef, ...]] = set()

        def ordered_successors(node: TaskRef) -> Iterator[TaskRef]:
            return iter(sorted(self.successors(node), key=lambda r: r.sort_key))

        for root in sorted(self.nodes, key=lambda r: r.sort_key):
            if colors[root] != WHITE:
                continue

            colors[root] = GRAY
            path: list[TaskRef] = [root]
            position: dict[TaskRef, int] = {root: 0}
            stack: list[tuple[TaskRef, Iterator[TaskRef]]] = [
                (root, ordered_successors(root))
            ]

            while stack:
                node, neighbors = stack[-1]
                neighbor = next(neighbors, None)
                if neighbor is None:
                    stack.pop()
                    path.pop()
                    del position[node]
                    colors[node] = BLACK
                    continue

                if colors[neighbor] == GRAY:
                    # Back edge closes a cycle
                    cycle = _normalize_cycle(path[position[neighbor]:])
                    key = tuple(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif colors[neighbor] == WHITE:
                    colors[neighbor] = GRAY
                    position[neighbor] = len(path)
                    path.append(neighbor)
                    stack.append((neighbor, ordered_successors(neighbor)))

        if cycles:
            logger.debug(f"Detected {len(cycles)} dependency cycles")
        return cycles

    def find_path(self, source: TaskRef, target: TaskRef) -> list[TaskRef] | None:
        """
        Find a dependency path from ``source`` to ``target``.

        Breadth-first, so the path is a shortest one; ties follow canonical
        id order.

        Returns:
            The path including both endpoints, or None if unreachable.
        """
        if source not in self.nodes or target not in self.nodes:
            return None
        if source == target:
            return [source]

        previous: dict[TaskRef, TaskRef] = {}
        queue: deque[TaskRef] = deque([source])
        visited = {source}

        while queue:
            node = queue.popleft()
            for neighbor in sorted(self.successors(node), key=lambda r: r.sort_key):
                if neighbor in visited:
                    continue
                previous[neighbor] = node
                if neighbor == target:
                    path = [target]
                    while path[-1] != source:
                        path.append(previous[path[-1]])
                    return list(reversed(path))
                visited.add(neighbor)
                queue.append(neighbor)

        return None

    def to_dict(self) -> dict[str, list[str]]:
        """Convert edges to a ``{"N.M": ["N", ...]}`` mapping."""
        return {
            str(node): [str(dep) for dep in deps]
            for node, deps in self.edges.items()
        }


def _normalize_cycle(members: list[TaskRef]) -> list[TaskRef]:
    """Rotate a cycle to start at its lowest id and close it."""
    start = min(range(len(members)), key=lambda i: members[i].sort_key)
    rotated = members[start:] + members[:start]
    return rotated + [rotated[0]]


def build_graph(collection: TaskCollection) -> DependencyGraph:
    """
    Build a dependency graph from the current collection.

    Args:
        collection: Task collection to read.

    Returns:
        A fresh DependencyGraph; nothing is cached between calls.
    """
    graph = DependencyGraph()
    for ref, entity in collection.iter_entities():
        graph.add_entity(ref, entity)

    logger.debug(
        f"Built dependency graph: {len(graph.nodes)} nodes, "
        f"{sum(len(deps) for deps in graph.edges.values())} edges"
    )
    return graph
