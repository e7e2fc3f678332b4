"""
layerguard - Architecture conformance for layered codebases

Builds a module dependency graph from per-file import lists, checks every
edge against a layer-direction policy, finds circular dependencies, and
reports each breach at the import that caused it.
"""

__version__ = "0.3.0"

from .api import analyze, build_graph, detect_cycles, report, validate_layering
from .graph.models import ImportRecord, ModuleDescriptor, ModuleGraph
from .models import Layer, Severity, SourceSpan, Violation, ViolationKind

__all__ = [
    "analyze",  # Main entry point
    "build_graph",
    "validate_layering",
    "detect_cycles",
    "report",
    "ImportRecord",
    "ModuleDescriptor",
    "ModuleGraph",
    "Layer",
    "Severity",
    "SourceSpan",
    "Violation",
    "ViolationKind",
]
