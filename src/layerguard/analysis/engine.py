"""Analysis engine: one entry point over a closed set of checks.

Pipeline:
  Descriptors → ModuleGraphBuilder → ModuleGraph (immutable snapshot)
             → enabled checks, in order, on the same snapshot
             → ViolationReporter (merge, dedupe, order)

Checks are an explicit ordered list handed to the constructor; there is no
global registry. The graph is rebuilt per ``run``; ``update`` keeps the
previous snapshot only to recompute one file's edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from ..architecture.layers import LayerClassifier
from ..architecture.policy import LayerPolicy
from ..architecture.validator import BoundaryValidator
from ..config import LinterConfig
from ..exceptions import GraphStateError
from ..graph.builder import ModuleGraphBuilder, canonical_path
from ..graph.cycles import CycleDetector
from ..graph.models import ModuleDescriptor, ModuleGraph
from ..logging_config import get_logger
from ..models import ModuleId, RuleKind, Severity, Violation, ViolationKind
from ..reporting.reporter import ViolationReporter, summarize

logger = get_logger(__name__)


@dataclass
class AnalysisResult:
    """Outcome of one analysis pass."""

    graph: ModuleGraph
    violations: list[Violation] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    checks: list[RuleKind] = field(default_factory=list)

    @property
    def stats(self) -> dict[str, int]:
        stats = dict(self.graph.stats())
        stats["violations"] = len(self.violations)
        stats["skipped"] = len(self.skipped)
        return stats

    @property
    def counts(self) -> dict[str, int]:
        return summarize(self.violations)

    @property
    def has_cycles(self) -> bool:
        return any(v.kind is ViolationKind.CIRCULAR_DEPENDENCY for v in self.violations)

    def failing(self, cycles_only: bool = False) -> list[Violation]:
        """Violations that should fail a CI gate. INFO entries never do."""
        blocking = [v for v in self.violations if v.severity is not Severity.INFO]
        if cycles_only:
            return [v for v in blocking if v.kind is ViolationKind.CIRCULAR_DEPENDENCY]
        return blocking


class AnalysisEngine:
    """Builds the module graph and evaluates the enabled checks on it."""

    def __init__(
        self,
        config: Optional[LinterConfig] = None,
        checks: Optional[Sequence[RuleKind]] = None,
        policy: Optional[LayerPolicy] = None,
        classifier: Optional[LayerClassifier] = None,
    ):
        self.config = config if config is not None else LinterConfig()
        self.checks = (
            [RuleKind.parse(c) for c in checks] if checks is not None else self.config.checks
        )
        self.policy = policy if policy is not None else self.config.build_policy()
        self.classifier = classifier if classifier is not None else self.config.build_classifier()
        self.builder = ModuleGraphBuilder(
            self.classifier,
            workers=self.config.workers,
            package_names=self.config.package_names,
        )
        self.validator = BoundaryValidator(
            policy=self.policy,
            leak_markers=self.config.leak_markers,
            internal_segments=self.config.internal_segments,
            composition_roots=self.config.composition_roots,
            shared_segments=self.config.shared_segments,
            check_layers=RuleKind.LAYERING in self.checks,
            check_leakage=RuleKind.BOUNDARY in self.checks,
            layer_severity=self.config.severity_for(ViolationKind.LAYER_VIOLATION),
            leakage_severity=self.config.severity_for(ViolationKind.BOUNDARY_CROSSING),
        )
        self.cycle_detector = CycleDetector(
            severity=self.config.severity_for(ViolationKind.CIRCULAR_DEPENDENCY)
        )
        self.reporter = ViolationReporter()

        self._descriptors: dict[ModuleId, ModuleDescriptor] = {}
        self._last: Optional[AnalysisResult] = None

    # ── Full run ───────────────────────────────────────────────────

    def build(self, descriptors: Iterable[ModuleDescriptor]) -> ModuleGraph:
        return self.builder.build(list(descriptors))

    def analyze(self, graph: ModuleGraph) -> list[Violation]:
        """Run every enabled check on a complete graph snapshot.

        Layering and boundary checks share one pass over the edges.
        """
        outputs: list[list[Violation]] = []
        edges_checked = False
        for check in self.checks:
            if check is RuleKind.CYCLES:
                outputs.append(self.cycle_detector.detect(graph))
            elif check in (RuleKind.LAYERING, RuleKind.BOUNDARY):
                if not edges_checked:
                    outputs.append(self.validator.validate(graph))
                    edges_checked = True
            else:
                raise ValueError(f"Unhandled check: {check!r}")
        return self.reporter.report(*outputs)

    def run(self, descriptors: Iterable[ModuleDescriptor]) -> AnalysisResult:
        """Build a fresh graph from the complete descriptor list and analyze it."""
        descriptors = list(descriptors)
        graph, skipped = self.builder.build_with_diagnostics(descriptors)

        self._descriptors = {}
        for descriptor in descriptors:
            path = getattr(descriptor, "path", None)
            if isinstance(path, str) and canonical_path(path):
                self._descriptors.setdefault(canonical_path(path), descriptor)

        result = AnalysisResult(
            graph=graph,
            violations=self.analyze(graph),
            skipped=skipped,
            checks=list(self.checks),
        )
        self._last = result
        logger.info(
            f"Analyzed {result.stats['modules']} modules, {graph.edge_count} edges: "
            f"{len(result.violations)} violations"
        )
        return result

    # ── Incremental ────────────────────────────────────────────────

    def update(self, descriptor: ModuleDescriptor) -> AnalysisResult:
        """Re-analyze after a single file changed.

        Recomputes only that file's outgoing edges when it is already part
        of the graph; a new file falls back to a full rebuild because it can
        change how other files' imports resolve. Checks always run on the
        complete snapshot.
        """
        module_id = canonical_path(descriptor.path)
        if not module_id:
            raise GraphStateError(repr(descriptor.path), "descriptor has no usable path")
        is_new = module_id not in self._descriptors
        self._descriptors[module_id] = descriptor

        if self._last is None or is_new:
            return self.run(self._descriptors.values())

        graph, skipped = self.builder.update_with_diagnostics(self._last.graph, descriptor)
        kept = [s for s in self._last.skipped if not s.startswith(f"{module_id}:")]
        result = AnalysisResult(
            graph=graph,
            violations=self.analyze(graph),
            skipped=kept + skipped,
            checks=list(self.checks),
        )
        self._last = result
        return result

    def remove(self, module_id: ModuleId) -> AnalysisResult:
        """Re-analyze after a file was deleted (full rebuild)."""
        self._descriptors.pop(canonical_path(module_id), None)
        return self.run(self._descriptors.values())

    def rebuild(self) -> AnalysisResult:
        """Discard the incremental state and rebuild from every known descriptor."""
        return self.run(self._descriptors.values())
