"""Module graph construction from per-file import lists.

Each descriptor's imports are resolved independently (and optionally in
parallel) into candidate edges; a single sequential pass then merges them
into the graph. Imports that do not resolve to a file in the project become
synthetic external nodes.
"""

from __future__ import annotations

import posixpath
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath
from typing import Callable, Iterable, Optional, Sequence

from ..exceptions import GraphStateError
from ..logging_config import get_logger
from ..models import Layer, LayerName, ModuleId, SourceSpan, normalize_layer
from .models import (
    EXTERNAL_PREFIX,
    CandidateEdges,
    Edge,
    ImportRecord,
    Module,
    ModuleDescriptor,
    ModuleGraph,
)

logger = get_logger(__name__)

Classifier = Callable[[Optional[str]], LayerName]

# Below this many files, thread start-up costs more than it saves
_PARALLEL_MIN_FILES = 32


def canonical_path(path: str) -> ModuleId:
    """Normalize a module path into its canonical id.

    Backslashes become forward slashes, ``.`` and ``..`` segments collapse,
    and leading ``./`` is removed. Case is preserved.
    """
    normalized = path.strip().replace("\\", "/")
    if not normalized:
        return normalized
    result = posixpath.normpath(normalized)
    return "" if result == "." else result


def external_id(target: str) -> ModuleId:
    """Synthetic node id for an import that does not resolve in the project."""
    return EXTERNAL_PREFIX + external_package(target)


def external_package(target: str) -> str:
    """Best-effort package name for an external import.

    ``package:flutter/material.dart`` -> ``flutter``, ``requests.adapters``
    -> ``requests``, ``@scope/pkg/sub`` -> ``@scope/pkg``, ``dart:async`` ->
    ``dart:async``. Relative imports that failed to resolve keep their text.
    """
    imp = _strip_quotes(target.strip())
    if imp.startswith("package:"):
        return imp[len("package:") :].split("/", 1)[0] or imp
    if imp.startswith((".", "/")):
        return imp
    if ":" in imp:
        return imp.split("/", 1)[0]
    if imp.startswith("@"):
        return "/".join(imp.split("/")[:2])
    return imp.split("/", 1)[0].split(".", 1)[0] or imp


class ImportResolver:
    """Resolves raw import strings against the set of known project files."""

    def __init__(self, known_paths: Iterable[ModuleId], package_names: Iterable[str] = ()):
        self.all_paths = frozenset(known_paths)
        self.path_index = _build_path_index(self.all_paths)
        self.package_roots = _build_package_roots(self.all_paths, package_names)
        self.project_prefixes = _infer_project_prefixes(self.all_paths)

    def resolve(self, imp: str, source_path: ModuleId) -> Optional[ModuleId]:
        """Resolve an import to a canonical in-project module id, or None.

        Handles:
          - Relative path imports: ./widgets/button.dart, ../models/user.ts
          - Relative dotted imports: .base, ..models, ..math.graph
          - Package URIs into the project: package:app/domain/user.dart
          - File paths relative to the importer: models/user.dart
          - Absolute dotted imports: app.domain.user
          - Plain project paths: src/app/domain/user.py
        """
        imp = _strip_quotes(imp.strip())
        if not imp:
            return None

        if imp.startswith(("./", "../")):
            base = posixpath.dirname(source_path)
            candidate = canonical_path(posixpath.join(base, imp))
            return candidate if candidate in self.all_paths else None

        if imp.startswith("."):
            return _resolve_relative_import(imp, source_path, self.all_paths)

        if imp.startswith("package:"):
            return self._resolve_package_uri(imp[len("package:") :])

        if ":" not in imp and PurePosixPath(imp).suffix:
            base = posixpath.dirname(source_path)
            candidate = canonical_path(posixpath.join(base, imp))
            if candidate in self.all_paths:
                return candidate

        if "/" in imp:
            candidate = canonical_path(imp)
            return candidate if candidate in self.all_paths else None

        if imp in self.path_index:
            return self.path_index[imp]

        candidate = "src." + imp
        if candidate in self.path_index:
            return self.path_index[candidate]

        # Strip the leading package progressively, but only for imports that
        # look like they belong to this project: "app.domain.user" -> "domain.user"
        parts = imp.split(".")
        if parts[0] not in self.project_prefixes:
            return None
        for i in range(1, len(parts)):
            suffix = ".".join(parts[i:])
            if suffix in self.path_index:
                return self.path_index[suffix]

        return None

    def _resolve_package_uri(self, package_path: str) -> Optional[ModuleId]:
        # Only the project's own packages; package:provider/provider.dart stays
        # external even when lib/provider.dart exists
        package, _, rest = package_path.partition("/")
        root = self.package_roots.get(package)
        if root is None or not rest:
            return None
        candidate = canonical_path(root + rest)
        return candidate if candidate in self.all_paths else None


def _strip_quotes(imp: str) -> str:
    if len(imp) >= 2 and imp[0] == imp[-1] and imp[0] in ("'", '"'):
        return imp[1:-1]
    return imp


def _infer_project_prefixes(all_paths: Iterable[str]) -> set[str]:
    """Infer project namespace prefixes from file paths.

    If files live under "src/myproject/", then "myproject" is a project prefix.
    """
    prefixes: set[str] = set()
    for path in all_paths:
        parts = PurePosixPath(path).parts
        if len(parts) >= 2:
            prefixes.add(parts[0])
            if parts[0] in ("src", "lib") and len(parts) >= 3:
                prefixes.add(parts[1])
    return prefixes


def _build_path_index(all_paths: Iterable[str]) -> dict[str, str]:
    """Map dotted module paths to file paths for import resolution.

    Builds multiple lookup keys per file so resolution can work
    from different prefix levels.
    """
    index: dict[str, str] = {}
    for path in sorted(all_paths):
        pure = PurePosixPath(path)
        # "src/app/models.py" -> "src.app.models"
        dotted = ".".join(pure.with_suffix("").parts) if pure.suffix else ".".join(pure.parts)
        if dotted.endswith(".__init__"):
            dotted = dotted[: -len(".__init__")]
        elif dotted == "__init__":
            continue

        index.setdefault(dotted, path)

        if dotted.startswith("src."):
            index.setdefault(dotted[4:], path)

    return index


def _build_package_roots(all_paths: Iterable[str], package_names: Iterable[str]) -> dict[str, str]:
    """Map project package names to their ``lib/`` roots for package URIs.

    ``app/lib/domain/user.dart`` makes ``app`` a package rooted at
    ``app/lib/``. A top-level ``lib/`` has no name of its own, so it is
    reachable only through explicitly configured ``package_names``.
    """
    roots: dict[str, str] = {}
    for path in sorted(all_paths):
        if "/lib/" in path:
            prefix = path.split("/lib/", 1)[0]
            roots.setdefault(PurePosixPath(prefix).name, prefix + "/lib/")
    for name in package_names:
        roots.setdefault(name, "lib/")
    return roots


def _resolve_relative_import(imp: str, source_path: str, all_paths: frozenset[str]) -> Optional[str]:
    """Resolve a Python relative import like ..models or .base."""
    dot_count = 0
    while dot_count < len(imp) and imp[dot_count] == ".":
        dot_count += 1
    module_part = imp[dot_count:]

    source_dir = PurePosixPath(source_path).parent
    for _ in range(dot_count - 1):  # -1 because . means current package
        source_dir = source_dir.parent

    if module_part:
        module_as_path = module_part.replace(".", "/")
        candidates = [
            str(source_dir / module_as_path) + ".py",
            str(source_dir / module_as_path / "__init__.py"),
        ]
    else:
        candidates = [str(source_dir / "__init__.py")]

    for candidate in candidates:
        candidate = canonical_path(candidate)
        if candidate in all_paths:
            return candidate

    return None


class ModuleGraphBuilder:
    """Builds immutable ``ModuleGraph`` snapshots from module descriptors.

    Two modes:
      - ``build`` / ``rebuild``: full construction from the complete list
      - ``update``: recompute a single file's outgoing edges on an existing
        snapshot, returning a new snapshot
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        workers: Optional[int] = None,
        package_names: Sequence[str] = (),
    ):
        if classifier is None:
            from ..architecture.layers import classify_layer

            classifier = classify_layer
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")
        self.classifier = classifier
        self.workers = workers
        self.package_names = tuple(package_names)

    # ── Full rebuild ───────────────────────────────────────────────

    def build(self, descriptors: Sequence[ModuleDescriptor]) -> ModuleGraph:
        graph, _skipped = self.build_with_diagnostics(descriptors)
        return graph

    rebuild = build

    def build_with_diagnostics(
        self, descriptors: Sequence[ModuleDescriptor]
    ) -> tuple[ModuleGraph, list[str]]:
        """Build a graph and return the messages for every skipped record."""
        skipped: list[str] = []
        unique = self._unique_descriptors(descriptors, skipped)
        resolver = ImportResolver(
            (canonical_path(d.path) for d in unique), self.package_names
        )

        candidates = self._collect_all(unique, resolver)

        # Single aggregation pass: the only place the graph structure is written
        modules: dict[ModuleId, Module] = {}
        edges: dict[ModuleId, dict[ModuleId, Edge]] = {}
        for candidate in candidates:
            modules[candidate.module.id] = candidate.module
            edges.setdefault(candidate.module.id, {})
            skipped.extend(candidate.skipped)
        for candidate in candidates:
            self._insert(candidate, modules, edges)

        graph = ModuleGraph(modules, edges)
        logger.debug(
            f"Built module graph: {len(modules)} nodes, {graph.edge_count} edges, "
            f"{len(skipped)} skipped records"
        )
        return graph, skipped

    def _unique_descriptors(
        self, descriptors: Sequence[ModuleDescriptor], skipped: list[str]
    ) -> list[ModuleDescriptor]:
        seen: set[ModuleId] = set()
        unique: list[ModuleDescriptor] = []
        for descriptor in descriptors:
            path = getattr(descriptor, "path", None)
            if not isinstance(path, str) or not canonical_path(path):
                message = f"Skipping module descriptor without a usable path: {descriptor!r}"
                logger.warning(message)
                skipped.append(message)
                continue
            module_id = canonical_path(path)
            if module_id in seen:
                message = f"Skipping duplicate descriptor for {module_id}"
                logger.warning(message)
                skipped.append(message)
                continue
            seen.add(module_id)
            unique.append(descriptor)
        return unique

    def _collect_all(
        self, descriptors: list[ModuleDescriptor], resolver: ImportResolver
    ) -> list[CandidateEdges]:
        if self.workers == 1 or len(descriptors) < _PARALLEL_MIN_FILES:
            return [self.collect_edges(d, resolver) for d in descriptors]

        # Results are consumed in submission order so the merge is deterministic
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self.collect_edges, d, resolver) for d in descriptors]
            return [future.result() for future in futures]

    @staticmethod
    def _insert(
        candidate: CandidateEdges,
        modules: dict[ModuleId, Module],
        edges: dict[ModuleId, dict[ModuleId, Edge]],
    ) -> None:
        outgoing = edges.setdefault(candidate.module.id, {})
        for ext_id, raw in candidate.external_targets.items():
            if ext_id not in modules:
                modules[ext_id] = Module(id=ext_id, layer=Layer.EXTERNAL.value)
                edges.setdefault(ext_id, {})
                logger.debug(f"Unresolved import {raw!r} recorded as {ext_id}")
        for edge in candidate.edges:
            # First location seen wins
            if edge.target not in outgoing:
                outgoing[edge.target] = edge

    # ── Per-file collection (pure, parallel-safe) ──────────────────

    def collect_edges(self, descriptor: ModuleDescriptor, resolver: ImportResolver) -> CandidateEdges:
        """Resolve one file's imports into candidate edges.

        Touches no shared mutable state. Malformed import records are
        skipped with a warning and reported in ``CandidateEdges.skipped``.
        """
        module_id = canonical_path(descriptor.path)
        if descriptor.layer is not None:
            layer = normalize_layer(descriptor.layer)
        else:
            layer = self.classifier(module_id)
        module = Module(id=module_id, layer=layer, source_span=SourceSpan(module_id, 1, 1))
        result = CandidateEdges(module=module)

        imports = descriptor.imports
        if imports is None:
            imports = ()
        elif isinstance(imports, (str, bytes)) or not hasattr(imports, "__iter__"):
            message = f"{module_id}: imports must be a list, got {type(imports).__name__}"
            logger.warning(message)
            result.skipped.append(message)
            return result

        seen_targets: set[ModuleId] = set()
        for position, record in enumerate(imports):
            problem = _validate_record(record)
            if problem is not None:
                message = f"{module_id}: skipping import #{position + 1}: {problem}"
                logger.warning(message)
                result.skipped.append(message)
                continue

            target = resolver.resolve(record.target, module_id)
            if target is None:
                target = external_id(record.target)
                result.external_targets.setdefault(target, record.target)

            if target in seen_targets:
                continue
            seen_targets.add(target)
            result.edges.append(
                Edge(
                    source=module_id,
                    target=target,
                    location=record.location,
                    raw_import=record.target,
                )
            )

        return result

    # ── Incremental mode ───────────────────────────────────────────

    def update(self, graph: ModuleGraph, descriptor: ModuleDescriptor) -> ModuleGraph:
        """Recompute one file's outgoing edges and return a new snapshot.

        Other files' edges are left as they were. When the file is new to
        the graph, imports elsewhere that should now resolve to it are not
        revisited; call ``rebuild`` with the full descriptor list for that.
        """
        updated, _skipped = self.update_with_diagnostics(graph, descriptor)
        return updated

    def update_with_diagnostics(
        self, graph: ModuleGraph, descriptor: ModuleDescriptor
    ) -> tuple[ModuleGraph, list[str]]:
        module_id = canonical_path(descriptor.path)
        if not module_id:
            raise GraphStateError(repr(descriptor.path), "descriptor has no usable path")
        known = [m.id for m in graph.internal_modules()]
        if module_id not in graph:
            known.append(module_id)
        resolver = ImportResolver(known, self.package_names)
        candidate = self.collect_edges(descriptor, resolver)

        modules = dict(graph.modules)
        edges = graph.outgoing_edges()
        modules[module_id] = candidate.module
        edges[module_id] = {}
        self._insert(candidate, modules, edges)
        _prune_unreferenced_externals(modules, edges)

        logger.debug(f"Recomputed {len(edges[module_id])} outgoing edges for {module_id}")
        return ModuleGraph(modules, edges), list(candidate.skipped)

    def remove(self, graph: ModuleGraph, module_id: ModuleId) -> ModuleGraph:
        """Return a new snapshot without ``module_id`` or any edge touching it."""
        module_id = canonical_path(module_id)
        if module_id not in graph:
            raise GraphStateError(module_id, "module is not part of the graph")
        modules = {k: v for k, v in graph.modules.items() if k != module_id}
        edges = {
            source: {t: e for t, e in targets.items() if t != module_id}
            for source, targets in graph.outgoing_edges().items()
            if source != module_id
        }
        _prune_unreferenced_externals(modules, edges)
        return ModuleGraph(modules, edges)


def _validate_record(record: object) -> Optional[str]:
    """Return a reason string when an import record cannot become an edge."""
    if not isinstance(record, ImportRecord):
        return f"expected ImportRecord, got {type(record).__name__}"
    if not isinstance(record.target, str) or not record.target.strip():
        return "missing import target"
    if not isinstance(record.location, SourceSpan):
        return f"missing location for import {record.target!r}"
    return None


def _prune_unreferenced_externals(
    modules: dict[ModuleId, Module], edges: dict[ModuleId, dict[ModuleId, Edge]]
) -> None:
    referenced = {target for targets in edges.values() for target in targets}
    for module_id in [m for m, module in modules.items() if module.external]:
        if module_id not in referenced:
            del modules[module_id]
            edges.pop(module_id, None)
