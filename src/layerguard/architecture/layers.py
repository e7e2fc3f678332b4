"""Layer classification from module paths.

A path is split into directory components and matched against configured
segment patterns. A pattern may span several components ("core/domain").
The longest matching pattern wins; among equally long matches the deepest
one wins, so ``lib/ui/auth/data/x.dart`` classifies as data rather than
presentation. Role directories such as ``repositories`` are not segments
because they appear under both domain and data.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..models import Layer, LayerName, normalize_layer

DEFAULT_LAYER_SEGMENTS: dict[str, tuple[str, ...]] = {
    Layer.DOMAIN.value: ("domain", "core/domain", "entities", "usecases", "use_cases"),
    Layer.DATA.value: (
        "data",
        "datasources",
        "data_sources",
        "infrastructure",
    ),
    Layer.PRESENTATION.value: (
        "presentation",
        "ui",
        "views",
        "widgets",
        "pages",
        "screens",
        "states",
    ),
}


def split_directories(path: Optional[str]) -> list[str]:
    """Lower-cased directory components of a path, filename excluded."""
    if not path or not isinstance(path, str):
        return []
    normalized = path.replace("\\", "/").strip().lower()
    parts = [p for p in normalized.split("/") if p and p != "."]
    return parts[:-1]


class LayerClassifier:
    """Maps module paths to layers. Pure and stateless after construction."""

    def __init__(self, segments: Optional[Mapping[str, Sequence[str]]] = None):
        if segments is None:
            segments = DEFAULT_LAYER_SEGMENTS
        # (components, layer) sorted longest first
        patterns: list[tuple[tuple[str, ...], LayerName]] = []
        for layer, layer_segments in segments.items():
            for segment in layer_segments:
                components = tuple(
                    p for p in segment.replace("\\", "/").strip("/").lower().split("/") if p
                )
                if components:
                    patterns.append((components, normalize_layer(layer)))
        patterns.sort(key=lambda item: (-len(item[0]), item[0], item[1]))
        self._patterns = tuple(patterns)

    @property
    def layers(self) -> list[LayerName]:
        return sorted({layer for _, layer in self._patterns})

    def classify(self, path: Optional[str]) -> LayerName:
        """Classify a module path. Never raises; unmatched paths are UNKNOWN."""
        directories = split_directories(path)
        if not directories:
            return Layer.UNKNOWN.value

        best: Optional[tuple[int, int, LayerName]] = None  # (length, position, layer)
        for components, layer in self._patterns:
            size = len(components)
            if best is not None and size < best[0]:
                break
            position = _last_match(directories, components)
            if position < 0:
                continue
            if best is None or (size, position) > (best[0], best[1]):
                best = (size, position, layer)

        return best[2] if best is not None else Layer.UNKNOWN.value

    def __call__(self, path: Optional[str]) -> LayerName:
        return self.classify(path)


def _last_match(directories: list[str], components: tuple[str, ...]) -> int:
    """Index of the deepest occurrence of ``components`` in ``directories``, or -1."""
    size = len(components)
    for start in range(len(directories) - size, -1, -1):
        if tuple(directories[start : start + size]) == components:
            return start
    return -1


_DEFAULT_CLASSIFIER = LayerClassifier()


def classify_layer(path: Optional[str]) -> LayerName:
    """Classify a path with the default layer segments."""
    return _DEFAULT_CLASSIFIER.classify(path)
