"""Data models for the module dependency graph.

Level 1: descriptors — what the host's parser hands us (path + imports)
Level 2: modules and edges — canonical, deduplicated graph elements
Level 3: the graph — an immutable snapshot shared by every check
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from ..models import Layer, LayerName, ModuleId, SourceSpan

EXTERNAL_PREFIX = "external:"


# ── Level 1: Host input ────────────────────────────────────────────


@dataclass(frozen=True)
class ImportRecord:
    """One import statement as extracted by the host's parser."""

    target: str
    location: Optional[SourceSpan] = None


@dataclass(frozen=True)
class ModuleDescriptor:
    """Per-file input: the file path, its imports, and an optional layer.

    When ``layer`` is None the classifier decides from the path.
    """

    path: str
    imports: tuple[ImportRecord, ...] = ()
    layer: Optional[LayerName] = None


# ── Level 2: Graph elements ────────────────────────────────────────


@dataclass(frozen=True)
class Module:
    """A graph node. Identity is the canonical path (or external id)."""

    id: ModuleId
    layer: LayerName
    source_span: Optional[SourceSpan] = None

    @property
    def external(self) -> bool:
        return self.id.startswith(EXTERNAL_PREFIX)


@dataclass(frozen=True)
class Edge:
    """A directed import relation. One per (source, target) pair."""

    source: ModuleId
    target: ModuleId
    location: SourceSpan
    raw_import: str = ""


@dataclass
class CandidateEdges:
    """Result of collecting a single file's outgoing edges.

    Produced independently per file (possibly in parallel) and merged into
    the graph in one sequential pass.
    """

    module: Module
    edges: list[Edge] = field(default_factory=list)
    external_targets: dict[ModuleId, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


# ── Level 3: The graph snapshot ────────────────────────────────────


class ModuleGraph:
    """Immutable adjacency-list graph over modules and edges.

    Edges are directed: ``neighbors(a)`` contains ``b`` when ``a`` imports
    ``b``. All collections are exposed read-only; rules cannot mutate the
    snapshot they analyze.
    """

    def __init__(
        self,
        modules: Mapping[ModuleId, Module],
        edges: Mapping[ModuleId, Mapping[ModuleId, Edge]],
    ):
        self._modules = MappingProxyType(dict(modules))
        adjacency: dict[ModuleId, Mapping[ModuleId, Edge]] = {}
        reverse: dict[ModuleId, dict[ModuleId, Edge]] = {m: {} for m in self._modules}
        for source in self._modules:
            outgoing = dict(edges.get(source, {}))
            adjacency[source] = MappingProxyType(outgoing)
            for target, edge in outgoing.items():
                reverse.setdefault(target, {})[source] = edge
        self._adjacency = MappingProxyType(adjacency)
        self._reverse = MappingProxyType({k: MappingProxyType(v) for k, v in reverse.items()})
        self._edge_count = sum(len(v) for v in adjacency.values())

    @property
    def modules(self) -> Mapping[ModuleId, Module]:
        return self._modules

    @property
    def adjacency(self) -> Mapping[ModuleId, Mapping[ModuleId, Edge]]:
        return self._adjacency

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def module(self, module_id: ModuleId) -> Module:
        return self._modules[module_id]

    def layer_of(self, module_id: ModuleId) -> LayerName:
        module = self._modules.get(module_id)
        return module.layer if module is not None else Layer.UNKNOWN.value

    def neighbors(self, module_id: ModuleId) -> Mapping[ModuleId, Edge]:
        """Outgoing edges of a module keyed by target id."""
        return self._adjacency.get(module_id, MappingProxyType({}))

    def importers(self, module_id: ModuleId) -> Mapping[ModuleId, Edge]:
        """Incoming edges of a module keyed by source id."""
        return self._reverse.get(module_id, MappingProxyType({}))

    def edge(self, source: ModuleId, target: ModuleId) -> Optional[Edge]:
        return self.neighbors(source).get(target)

    def edges(self) -> Iterator[Edge]:
        """All edges ordered by (source, target) so iteration is deterministic."""
        for source in sorted(self._adjacency):
            outgoing = self._adjacency[source]
            for target in sorted(outgoing):
                yield outgoing[target]

    def internal_modules(self) -> list[Module]:
        return [m for _, m in sorted(self._modules.items()) if not m.external]

    def external_modules(self) -> list[Module]:
        return [m for _, m in sorted(self._modules.items()) if m.external]

    def outgoing_edges(self) -> dict[ModuleId, dict[ModuleId, Edge]]:
        """Mutable copy of the adjacency, for builders deriving a new snapshot."""
        return {source: dict(targets) for source, targets in self._adjacency.items()}

    def stats(self) -> dict[str, int]:
        external = sum(1 for m in self._modules.values() if m.external)
        return {
            "modules": len(self._modules) - external,
            "external_modules": external,
            "edges": self._edge_count,
        }

    def __repr__(self) -> str:
        return f"ModuleGraph(modules={len(self._modules)}, edges={self._edge_count})"
