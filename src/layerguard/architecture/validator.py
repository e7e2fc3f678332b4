"""Boundary validation over every edge of the module graph.

Two independent checks per edge:
1. Layer policy: is ``source.layer -> target.layer`` permitted?
2. Implementation leakage: does the edge reach into another layer's
   implementation detail (``*_impl``, ``internal/``)?

An edge may fail both; they are separate breaches and both are reported.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional, Sequence

from ..graph.models import Edge, Module, ModuleGraph
from ..logging_config import get_logger
from ..models import Layer, Severity, Violation, ViolationKind, layer_title
from .layers import split_directories
from .policy import LayerPolicy, default_policy

logger = get_logger(__name__)

DEFAULT_LEAK_MARKERS: tuple[str, ...] = ("_impl", "impl", "_internal", "_private")
DEFAULT_INTERNAL_SEGMENTS: tuple[str, ...] = ("internal", "_internal")
DEFAULT_COMPOSITION_ROOTS: tuple[str, ...] = (
    "di",
    "injection",
    "injection_container",
    "dependency_injection",
    "service_locator",
    "locator",
    "main",
)
DEFAULT_SHARED_SEGMENTS: tuple[str, ...] = ("utils", "constants")

# (from, to) -> advice; anything else falls back to the generic suggestion
_SUGGESTIONS: dict[tuple[str, str], str] = {
    (Layer.DOMAIN.value, Layer.DATA.value): (
        "Domain must remain pure. Invert the dependency: declare an abstraction "
        "(e.g. a repository interface) in Domain and implement it in Data."
    ),
    (Layer.DOMAIN.value, Layer.PRESENTATION.value): (
        "Domain must stay independent of UI concerns. Move the UI-specific logic "
        "to Presentation, or expose an abstraction Presentation can implement."
    ),
    (Layer.PRESENTATION.value, Layer.DATA.value): (
        "Presentation should go through Domain (use cases, repository interfaces) "
        "instead of reaching into Data directly."
    ),
    (Layer.DATA.value, Layer.PRESENTATION.value): (
        "Data should depend only on Domain. Remove the presentation dependency "
        "or move the shared type into Domain."
    ),
}


class BoundaryValidator:
    """Checks every edge against a ``LayerPolicy`` and the leakage rule."""

    def __init__(
        self,
        policy: Optional[LayerPolicy] = None,
        leak_markers: Sequence[str] = DEFAULT_LEAK_MARKERS,
        internal_segments: Sequence[str] = DEFAULT_INTERNAL_SEGMENTS,
        composition_roots: Sequence[str] = DEFAULT_COMPOSITION_ROOTS,
        shared_segments: Sequence[str] = DEFAULT_SHARED_SEGMENTS,
        check_layers: bool = True,
        check_leakage: bool = True,
        layer_severity: Severity = Severity.ERROR,
        leakage_severity: Severity = Severity.WARNING,
    ):
        self.policy = policy if policy is not None else default_policy()
        self.leak_markers = tuple(m.lower() for m in leak_markers)
        self.internal_segments = frozenset(s.lower() for s in internal_segments)
        self.composition_roots = frozenset(r.lower() for r in composition_roots)
        self.shared_segments = frozenset(s.lower() for s in shared_segments)
        self.check_layers = check_layers
        self.check_leakage = check_leakage
        self.layer_severity = layer_severity
        self.leakage_severity = leakage_severity

    def validate(self, graph: ModuleGraph) -> list[Violation]:
        """Visit each edge once and collect layer and leakage violations."""
        violations: list[Violation] = []
        seen: set[tuple] = set()

        for edge in graph.edges():
            source = graph.module(edge.source)
            target = graph.module(edge.target)

            found: list[Violation] = []
            if self.check_layers:
                layer_violation = self.check_layer_policy(edge, source, target)
                if layer_violation is not None:
                    found.append(layer_violation)
            if self.check_leakage:
                leak = self.check_implementation_leak(edge, source, target)
                if leak is not None:
                    found.append(leak)

            for violation in found:
                if violation.dedupe_key not in seen:
                    seen.add(violation.dedupe_key)
                    violations.append(violation)

        logger.debug(f"Boundary validation: {graph.edge_count} edges, {len(violations)} violations")
        return violations

    # ── Layer policy ───────────────────────────────────────────────

    def check_layer_policy(self, edge: Edge, source: Module, target: Module) -> Optional[Violation]:
        if target.external or source.external:
            return None
        if self.policy.allowed(source.layer, target.layer):
            return None
        if self._is_composition_root(source.id):
            logger.debug(f"{source.id} is a composition root; layer check skipped")
            return None
        if self._is_shared(target.id):
            return None

        source_title = layer_title(source.layer)
        target_title = layer_title(target.layer)
        return Violation(
            kind=ViolationKind.LAYER_VIOLATION,
            path=(edge.source, edge.target),
            location=edge.location,
            message=(
                f"{source_title} must not depend on {target_title}: "
                f"{edge.source} imports {edge.target}"
            ),
            suggestion=_SUGGESTIONS.get(
                (source.layer, target.layer),
                f"Invert the dependency or introduce an abstraction in {source_title} "
                f"that {target_title} implements, so that {source_title} no longer "
                f"imports {target_title} directly.",
            ),
            severity=self.layer_severity,
        )

    def _is_composition_root(self, module_id: str) -> bool:
        pure = PurePosixPath(module_id.lower())
        if pure.stem in self.composition_roots:
            return True
        return any(part in self.composition_roots for part in split_directories(module_id))

    def _is_shared(self, module_id: str) -> bool:
        return any(part in self.shared_segments for part in split_directories(module_id))

    # ── Implementation leakage ─────────────────────────────────────

    def is_implementation_detail(self, module_id: str) -> bool:
        """True when a path names an implementation detail by suffix or directory."""
        stem = PurePosixPath(module_id.lower()).stem
        if any(stem.endswith(marker) for marker in self.leak_markers):
            return True
        return any(part in self.internal_segments for part in split_directories(module_id))

    def check_implementation_leak(
        self, edge: Edge, source: Module, target: Module
    ) -> Optional[Violation]:
        if source.external or target.external:
            return None
        if self.policy.is_exempt(source.layer) or self.policy.is_exempt(target.layer):
            return None
        if source.layer == target.layer:
            return None
        if not self.is_implementation_detail(target.id):
            return None

        owner = layer_title(target.layer)
        return Violation(
            kind=ViolationKind.BOUNDARY_CROSSING,
            path=(edge.source, edge.target),
            location=edge.location,
            message=(
                f"{edge.source} ({layer_title(source.layer)}) imports {edge.target}, "
                f"an implementation detail of the {owner} layer"
            ),
            suggestion=(
                f"Depend on the public abstraction {owner} exposes instead of its "
                "implementation, and let dependency injection supply the concrete type."
            ),
            severity=self.leakage_severity,
        )
