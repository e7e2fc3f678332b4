"""Analysis-related exceptions: descriptor input and graph state."""

from typing import Optional

from .base import LayerguardError


class AnalysisError(LayerguardError):
    """Base class for analysis-related errors."""
    pass


class DescriptorError(AnalysisError):
    """Raised when a descriptor document cannot be read at all.

    Individual malformed modules or imports are skipped with a warning
    instead; this is only for input that yields nothing usable.
    """

    def __init__(self, source: str, reason: str, index: Optional[int] = None):
        details = {"source": source, "reason": reason}
        if index is not None:
            details["index"] = str(index)

        super().__init__(f"Cannot read module descriptors from {source}", details=details)
        self.source = source
        self.reason = reason
        self.index = index


class GraphStateError(AnalysisError):
    """Raised when the graph is not in the state an operation needs.

    Typical causes: an incremental update with a pathless descriptor,
    removing a module the graph never had, or a cycle without its edges.
    """

    def __init__(self, module_id: str, reason: str):
        super().__init__(
            f"Inconsistent graph state for {module_id}",
            details={"module": module_id, "reason": reason},
        )
        self.module_id = module_id
        self.reason = reason
