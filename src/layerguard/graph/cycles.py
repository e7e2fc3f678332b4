"""Circular dependency detection.

Iterative depth-first search with three colours over the whole module
graph. A back-edge to a node still on the stack closes a cycle, which is
read off the stack, rotated to start at its smallest module id and
deduplicated. Enumerating every simple cycle is deliberately not attempted:
one cycle per back-edge is enough to act on.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, Optional

from ..exceptions import GraphStateError
from ..logging_config import get_logger
from ..models import Layer, ModuleId, Severity, Violation, ViolationKind, layer_title
from .models import ModuleGraph

logger = get_logger(__name__)

Cycle = tuple[ModuleId, ...]


class _Color(Enum):
    WHITE = 0  # unvisited
    GRAY = 1  # on the DFS stack
    BLACK = 2  # finished


def canonicalize_cycle(cycle: Cycle) -> Cycle:
    """Rotate a cycle so it starts at its lexicographically smallest id."""
    if not cycle:
        return cycle
    start = min(range(len(cycle)), key=lambda i: cycle[i])
    return tuple(cycle[start:]) + tuple(cycle[:start])


def find_cycles(graph: ModuleGraph, roots: Optional[list[ModuleId]] = None) -> list[Cycle]:
    """Find one cycle per back-edge, canonicalized and deduplicated.

    Args:
        graph: The module graph snapshot
        roots: Optional DFS entry order; defaults to every node in sorted
            order. Every node is still visited.

    Returns:
        Canonical cycles in discovery order
    """
    color: dict[ModuleId, _Color] = {}
    found: list[Cycle] = []
    seen: set[Cycle] = set()

    order = list(roots) if roots is not None else []
    order.extend(sorted(graph.modules))

    for root in order:
        if root not in graph or color.get(root, _Color.WHITE) is not _Color.WHITE:
            continue
        for cycle in _dfs_from(graph, root, color):
            canonical = canonicalize_cycle(cycle)
            if canonical not in seen:
                seen.add(canonical)
                found.append(canonical)

    return found


def _dfs_from(graph: ModuleGraph, root: ModuleId, color: dict[ModuleId, _Color]) -> Iterator[Cycle]:
    """Iterative DFS from ``root`` yielding the raw cycle for each back-edge.

    Uses an explicit stack of (node, neighbor_iterator) frames to avoid
    Python recursion limits on deep dependency chains.
    """
    path: list[ModuleId] = [root]
    position: dict[ModuleId, int] = {root: 0}
    color[root] = _Color.GRAY
    stack: list[tuple[ModuleId, Iterator[ModuleId]]] = [(root, iter(sorted(graph.neighbors(root))))]

    while stack:
        node, neighbors = stack[-1]
        advanced = False
        for neighbor in neighbors:
            state = color.get(neighbor, _Color.WHITE)
            if state is _Color.WHITE:
                color[neighbor] = _Color.GRAY
                position[neighbor] = len(path)
                path.append(neighbor)
                stack.append((neighbor, iter(sorted(graph.neighbors(neighbor)))))
                advanced = True
                break
            if state is _Color.GRAY:
                # Back-edge node -> neighbor; a self-loop yields a one-node cycle
                yield tuple(path[position[neighbor] :])

        if not advanced:
            stack.pop()
            path.pop()
            del position[node]
            color[node] = _Color.BLACK


class CycleDetector:
    """Reports every distinct circular dependency in a graph as a violation."""

    def __init__(self, severity: Severity = Severity.ERROR):
        self.severity = severity

    def detect(self, graph: ModuleGraph) -> list[Violation]:
        violations = [self._to_violation(graph, cycle) for cycle in find_cycles(graph)]
        if violations:
            logger.debug(f"Detected {len(violations)} circular dependencies")
        return violations

    def _to_violation(self, graph: ModuleGraph, cycle: Cycle) -> Violation:
        # Anchor on the closing edge of the canonical rotation, so the
        # location does not depend on where the traversal started.
        closing = graph.edge(cycle[-1], cycle[0])
        if closing is None:
            raise GraphStateError(cycle[-1], f"no edge back to {cycle[0]} closes the cycle")

        if len(cycle) == 1:
            message = f"Circular dependency detected: {cycle[0]} imports itself"
        else:
            chain = " → ".join(_short_name(m) for m in cycle + (cycle[0],))
            message = f"Circular dependency detected: {chain}"

        return Violation(
            kind=ViolationKind.CIRCULAR_DEPENDENCY,
            path=cycle,
            location=closing.location,
            message=message,
            suggestion=cycle_suggestion(graph, cycle),
            severity=self.severity,
        )


def cycle_suggestion(graph: ModuleGraph, cycle: Cycle) -> str:
    """Pick refactoring advice from the layers and roles the cycle touches."""
    if len(cycle) == 1:
        return "Remove the self-import; a module never needs to import itself."

    layers = {graph.layer_of(m) for m in cycle} - {Layer.UNKNOWN.value, Layer.EXTERNAL.value}
    if len(layers) > 1:
        names = ", ".join(layer_title(layer) for layer in sorted(layers))
        return (
            f"The cycle spans layers ({names}). Break it with dependency inversion: "
            "define an abstraction in the inner layer that the outer layer implements."
        )

    lowered = [m.lower() for m in cycle]
    if any("repositor" in m for m in lowered):
        return (
            "Depend on repository interfaces in the domain layer instead of "
            "importing repository implementations directly."
        )
    if any("usecase" in m or "use_case" in m for m in lowered):
        return (
            "Use cases should not depend on each other directly. "
            "Combine them or extract the shared step into its own unit."
        )
    return (
        "Extract the shared functionality into a separate module, or inject "
        "the dependency instead of importing it."
    )


def _short_name(module_id: ModuleId) -> str:
    """Last two path components: lib/domain/entities/user.dart -> entities/user.dart."""
    parts = module_id.split("/")
    return "/".join(parts[-2:]) if len(parts) > 2 else module_id
