"""Core data models shared by every stage of the analysis.

Layers, source locations and violation records live here so the graph
builder, the validators and the formatters can all depend on them without
depending on each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union

ModuleId = str
LayerName = str


class Layer(str, Enum):
    """Built-in architectural layers.

    Custom layer sets are plain lowercase strings; use ``normalize_layer``
    before using a layer as a mapping key, since enum members hash by name.
    """

    DOMAIN = "domain"
    DATA = "data"
    PRESENTATION = "presentation"
    EXTERNAL = "external"
    UNKNOWN = "unknown"


def normalize_layer(value: Union[Layer, str, None]) -> LayerName:
    """Return the canonical plain-string form of a layer name."""
    if value is None:
        return Layer.UNKNOWN.value
    if isinstance(value, Layer):
        return value.value
    name = str(value).strip().lower()
    return name or Layer.UNKNOWN.value


def layer_title(value: Union[Layer, str]) -> str:
    """Human-readable layer name for messages ("domain" -> "Domain")."""
    return normalize_layer(value).replace("_", " ").title()


class ViolationKind(Enum):
    """The kinds of architectural breach the engine reports."""

    LAYER_VIOLATION = "layer_violation"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    BOUNDARY_CROSSING = "boundary_crossing"


class Severity(Enum):
    """Reporting severity. NONE disables a violation kind entirely."""

    NONE = "none"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        aliases = {
            "none": cls.NONE,
            "disabled": cls.NONE,
            "off": cls.NONE,
            "info": cls.INFO,
            "hint": cls.INFO,
            "warning": cls.WARNING,
            "warn": cls.WARNING,
            "error": cls.ERROR,
        }
        try:
            return aliases[value.strip().lower()]
        except KeyError:
            raise ValueError(
                f"unknown severity {value!r}; expected one of none, info, warning, error"
            ) from None


@dataclass(frozen=True, order=True)
class SourceSpan:
    """Location of an import statement. Lines and columns are 1-based."""

    path: str
    line: int = 1
    column: int = 1
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path, "line": self.line, "column": self.column}
        if self.end_line is not None:
            data["end_line"] = self.end_line
        if self.end_column is not None:
            data["end_column"] = self.end_column
        return data


@dataclass(frozen=True)
class Violation:
    """A single architectural breach, always anchored to a concrete edge.

    ``path`` is the edge ``(source, target)`` for layer and boundary
    violations, and the canonical cycle ``(a, b, c)`` for circular
    dependencies.
    """

    kind: ViolationKind
    path: Tuple[ModuleId, ...]
    location: SourceSpan
    message: str
    suggestion: str = ""
    severity: Severity = Severity.ERROR

    @property
    def dedupe_key(self) -> tuple:
        return (self.kind, self.path, self.location)

    @property
    def sort_key(self) -> tuple:
        return (
            self.location.path,
            self.location.line,
            self.location.column,
            self.kind.value,
            self.path,
            self.message,
        )

    def with_severity(self, severity: Severity) -> "Violation":
        return Violation(
            kind=self.kind,
            path=self.path,
            location=self.location,
            message=self.message,
            suggestion=self.suggestion,
            severity=severity,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "path": list(self.path),
            "location": self.location.to_dict(),
            "message": self.message,
            "suggestion": self.suggestion,
        }


class RuleKind(Enum):
    """The closed set of checks the analysis engine can run."""

    LAYERING = "layering"
    BOUNDARY = "boundary"
    CYCLES = "cycles"

    @classmethod
    def parse(cls, value: Union["RuleKind", str]) -> "RuleKind":
        if isinstance(value, RuleKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(f"unknown check {value!r}; expected one of {choices}") from None
