"""Exception hierarchy for layerguard."""

from .analysis import (
    AnalysisError,
    DescriptorError,
    GraphStateError,
)
from .base import LayerguardError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)

__all__ = [
    "LayerguardError",
    "AnalysisError",
    "DescriptorError",
    "GraphStateError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
