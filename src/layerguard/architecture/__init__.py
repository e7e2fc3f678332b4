"""Layer classification, layer policy and boundary validation."""

from .layers import DEFAULT_LAYER_SEGMENTS, LayerClassifier, classify_layer
from .models import PolicyEntry
from .policy import LayerPolicy, default_policy
from .validator import BoundaryValidator

__all__ = [
    "DEFAULT_LAYER_SEGMENTS",
    "LayerClassifier",
    "classify_layer",
    "PolicyEntry",
    "LayerPolicy",
    "default_policy",
    "BoundaryValidator",
]
