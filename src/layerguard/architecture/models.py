"""Architecture policy models."""

from dataclasses import dataclass

from ..models import LayerName


@dataclass(frozen=True)
class PolicyEntry:
    """One row of the layer policy table: may ``from_layer`` import ``to_layer``?"""

    from_layer: LayerName
    to_layer: LayerName
    allowed: bool
