"""Public API for layerguard.

Hosts that already have a parser hand over module descriptors and get back
an ordered list of violations. The four building blocks can be used on
their own; ``analyze`` wires them together with configuration.

Example:
    >>> from layerguard import ImportRecord, ModuleDescriptor, SourceSpan, analyze
    >>>
    >>> descriptors = [
    ...     ModuleDescriptor(
    ...         "lib/domain/user.dart",
    ...         imports=(ImportRecord("lib/data/user_model.dart",
    ...                               SourceSpan("lib/domain/user.dart", 3, 1)),),
    ...     ),
    ...     ModuleDescriptor("lib/data/user_model.dart"),
    ... ]
    >>> result = analyze(descriptors)
    >>> result.violations[0].message
    'Domain must not depend on Data: lib/domain/user.dart imports lib/data/user_model.dart'
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .analysis.engine import AnalysisEngine, AnalysisResult
from .architecture.policy import LayerPolicy
from .architecture.validator import BoundaryValidator
from .config import load_config
from .graph.builder import Classifier, ModuleGraphBuilder
from .graph.cycles import CycleDetector
from .graph.models import ModuleDescriptor, ModuleGraph
from .io import load_descriptors
from .logging_config import get_logger
from .models import Violation
from .reporting.reporter import ViolationReporter

logger = get_logger(__name__)


def build_graph(
    descriptors: Iterable[ModuleDescriptor],
    classifier: Optional[Classifier] = None,
    package_names: Sequence[str] = (),
) -> ModuleGraph:
    """Build an immutable module graph from the complete descriptor list.

    ``package_names`` lists the project's own Dart package names, so that
    ``package:<name>/...`` imports resolve into a top-level ``lib/``.
    """
    return ModuleGraphBuilder(classifier, package_names=package_names).build(list(descriptors))


def validate_layering(graph: ModuleGraph, policy: Optional[LayerPolicy] = None) -> list[Violation]:
    """Check every edge against the layer policy and the leakage rule.

    Uses the default Clean Architecture policy when ``policy`` is None.
    """
    return BoundaryValidator(policy=policy).validate(graph)


def detect_cycles(graph: ModuleGraph) -> list[Violation]:
    """One violation per distinct circular dependency."""
    return CycleDetector().detect(graph)


def report(*violation_lists: Iterable[Violation]) -> list[Violation]:
    """Merge, deduplicate and deterministically order violation lists."""
    return ViolationReporter().report(*violation_lists)


def analyze(
    descriptors: Union[Iterable[ModuleDescriptor], str, Path],
    config_file: Optional[Path] = None,
    **overrides,
) -> AnalysisResult:
    """Run every enabled check over a set of modules.

    Args:
        descriptors: Module descriptors, or the path of a descriptor JSON file
        config_file: Optional explicit config file path
        **overrides: Configuration overrides (e.g. enabled_checks=["cycles"])

    Returns:
        AnalysisResult with the graph, ordered violations and skipped records

    Raises:
        LayerguardError: If configuration or the descriptor file is invalid
    """
    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Configuration loaded: checks={config.enabled_checks}")

    if isinstance(descriptors, (str, Path)):
        descriptors = load_descriptors(descriptors)

    return AnalysisEngine(config).run(descriptors)
