"""Table-driven layer dependency policy.

The table lists (from_layer, to_layer) pairs that are explicitly allowed or
forbidden. Same-layer edges are always allowed, as is any edge touching an
exempt layer (external packages and unclassified modules cannot be judged).
Pairs not in the table are allowed.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from ..exceptions import InvalidConfigError
from ..models import Layer, LayerName, normalize_layer
from .models import PolicyEntry

DEFAULT_EXEMPT_LAYERS = frozenset({Layer.EXTERNAL.value, Layer.UNKNOWN.value})


class LayerPolicy:
    """Predicate ``allowed(from_layer, to_layer)`` backed by a policy table."""

    def __init__(
        self,
        entries: Iterable[PolicyEntry] = (),
        exempt_layers: Optional[Iterable[Union[Layer, str]]] = None,
    ):
        table: dict[tuple[LayerName, LayerName], bool] = {}
        for entry in entries:
            key = (normalize_layer(entry.from_layer), normalize_layer(entry.to_layer))
            table[key] = bool(entry.allowed)
        self._table = table
        if exempt_layers is None:
            self._exempt = DEFAULT_EXEMPT_LAYERS
        else:
            self._exempt = frozenset(normalize_layer(layer) for layer in exempt_layers)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Mapping[str, Any]],
        exempt_layers: Optional[Iterable[Union[Layer, str]]] = None,
    ) -> "LayerPolicy":
        """Build a policy from ``{"domain": {"data": false, ...}, ...}``.

        Raises:
            InvalidConfigError: If a row is not a table or a value is not a bool
        """
        entries = []
        for from_layer, row in mapping.items():
            if not isinstance(row, Mapping):
                raise InvalidConfigError(
                    f"policy.{from_layer}", row, "expected a table of layer = true/false"
                )
            for to_layer, allowed in row.items():
                if not isinstance(allowed, bool):
                    raise InvalidConfigError(
                        f"policy.{from_layer}.{to_layer}", allowed, "expected true or false"
                    )
                entries.append(PolicyEntry(from_layer, to_layer, allowed))
        return cls(entries, exempt_layers=exempt_layers)

    @property
    def entries(self) -> list[PolicyEntry]:
        return [
            PolicyEntry(from_layer, to_layer, allowed)
            for (from_layer, to_layer), allowed in sorted(self._table.items())
        ]

    @property
    def exempt_layers(self) -> frozenset[str]:
        return self._exempt

    @property
    def layers(self) -> list[LayerName]:
        """Every layer mentioned in the table."""
        names = {layer for pair in self._table for layer in pair}
        return sorted(names)

    def is_exempt(self, layer: Union[Layer, str, None]) -> bool:
        return normalize_layer(layer) in self._exempt

    def allowed(self, from_layer: Union[Layer, str, None], to_layer: Union[Layer, str, None]) -> bool:
        """Whether a module in ``from_layer`` may import one in ``to_layer``."""
        source = normalize_layer(from_layer)
        target = normalize_layer(to_layer)
        if source == target:
            return True
        if source in self._exempt or target in self._exempt:
            return True
        return self._table.get((source, target), True)

    def with_entry(
        self, from_layer: Union[Layer, str], to_layer: Union[Layer, str], allowed: bool
    ) -> "LayerPolicy":
        """Return a copy of this policy with one row added or replaced."""
        entries = self.entries + [PolicyEntry(from_layer, to_layer, allowed)]
        return LayerPolicy(entries, exempt_layers=self._exempt)

    def merged(self, other: "LayerPolicy") -> "LayerPolicy":
        """Return a policy where ``other``'s rows override this one's."""
        merged = self
        for entry in other.entries:
            merged = merged.with_entry(entry.from_layer, entry.to_layer, entry.allowed)
        return merged

    def __repr__(self) -> str:
        return f"LayerPolicy(entries={len(self._table)}, exempt={sorted(self._exempt)})"


def default_policy() -> LayerPolicy:
    """Clean Architecture dependency rule: dependencies point inward to Domain."""
    domain, data, presentation = Layer.DOMAIN, Layer.DATA, Layer.PRESENTATION
    return LayerPolicy(
        [
            PolicyEntry(presentation, domain, True),
            PolicyEntry(data, domain, True),
            PolicyEntry(domain, presentation, False),
            PolicyEntry(domain, data, False),
            PolicyEntry(presentation, data, False),
            PolicyEntry(data, presentation, False),
        ]
    )
