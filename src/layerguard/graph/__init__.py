"""Module dependency graph: construction and cycle detection."""

from .builder import ImportResolver, ModuleGraphBuilder, canonical_path
from .cycles import CycleDetector, canonicalize_cycle, find_cycles
from .models import Edge, ImportRecord, Module, ModuleDescriptor, ModuleGraph

__all__ = [
    "ImportResolver",
    "ModuleGraphBuilder",
    "canonical_path",
    "CycleDetector",
    "canonicalize_cycle",
    "find_cycles",
    "Edge",
    "ImportRecord",
    "Module",
    "ModuleDescriptor",
    "ModuleGraph",
]
