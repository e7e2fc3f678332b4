"""Configuration loading and management for layerguard.

Configuration sources are merged in priority order:
    1. Defaults (defined in LinterConfig)
    2. Global config (~/.layerguard.toml)
    3. Project config (./layerguard.toml, or [tool.layerguard] in ./pyproject.toml)
    4. Explicit config file
    5. Environment variables (LAYERGUARD_* prefix)
    6. Overrides (passed as kwargs, typically CLI flags)

Example:
    >>> config = load_config(fail_on_cycle_only=True)
    >>> config.fail_on_cycle_only
    True

A project config looks like::

    enabled_checks = ["layering", "cycles"]

    [layers]
    domain = ["domain", "core/domain"]
    application = ["application", "usecases"]

    [policy.domain]
    application = false

    [severities]
    boundary_crossing = "error"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .architecture.layers import DEFAULT_LAYER_SEGMENTS, LayerClassifier
from .architecture.policy import DEFAULT_EXEMPT_LAYERS, LayerPolicy, default_policy
from .architecture.validator import (
    DEFAULT_COMPOSITION_ROOTS,
    DEFAULT_INTERNAL_SEGMENTS,
    DEFAULT_LEAK_MARKERS,
    DEFAULT_SHARED_SEGMENTS,
)
from .exceptions import InvalidConfigError, InvalidPathError, LayerguardError
from .models import RuleKind, Severity, ViolationKind

Verbosity = Literal["quiet", "normal", "verbose"]

DEFAULT_SEVERITIES: dict[str, str] = {
    ViolationKind.LAYER_VIOLATION.value: Severity.ERROR.value,
    ViolationKind.CIRCULAR_DEPENDENCY.value: Severity.ERROR.value,
    ViolationKind.BOUNDARY_CROSSING.value: Severity.WARNING.value,
}


@dataclass(frozen=True)
class LinterConfig:
    """Configuration for an analysis run.

    All fields have defaults matching a conventional Clean Architecture
    layout (domain / data / presentation). Projects with custom layer sets
    override ``layer_segments`` and ``policy``.

    Attributes:
        Layers:
            layer_segments: layer name -> directory segments that identify it
            policy: from_layer -> {to_layer: allowed} rows
            use_default_policy: start from the built-in Clean Architecture rows
            exempt_layers: layers never judged by the policy

        Imports:
            package_names: package names whose package: URIs point into a
                top-level lib/ directory

        Boundary rules:
            leak_markers: file-stem suffixes marking implementation details
            internal_segments: directory names marking implementation details
            composition_roots: file stems / directories allowed to wire layers
            shared_segments: directories of cross-cutting code any layer may use

        Reporting:
            severities: violation kind -> none/info/warning/error
            enabled_checks: ordered subset of layering, boundary, cycles
            fail_on_cycle_only: only circular dependencies fail the run

        Performance:
            workers: threads for per-file edge collection (None = auto)

        Output control:
            verbosity: Logging verbosity level
    """

    # Layers
    layer_segments: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_LAYER_SEGMENTS.items()}
    )
    policy: dict[str, dict[str, bool]] = field(default_factory=dict)
    use_default_policy: bool = True
    exempt_layers: list[str] = field(default_factory=lambda: sorted(DEFAULT_EXEMPT_LAYERS))

    # Imports
    package_names: list[str] = field(default_factory=list)

    # Boundary rules
    leak_markers: list[str] = field(default_factory=lambda: list(DEFAULT_LEAK_MARKERS))
    internal_segments: list[str] = field(default_factory=lambda: list(DEFAULT_INTERNAL_SEGMENTS))
    composition_roots: list[str] = field(default_factory=lambda: list(DEFAULT_COMPOSITION_ROOTS))
    shared_segments: list[str] = field(default_factory=lambda: list(DEFAULT_SHARED_SEGMENTS))

    # Reporting
    severities: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SEVERITIES))
    enabled_checks: list[str] = field(default_factory=lambda: [k.value for k in RuleKind])
    fail_on_cycle_only: bool = False

    # Performance
    workers: Optional[int] = None

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not isinstance(self.layer_segments, dict):
            raise InvalidConfigError("layers", self.layer_segments, "expected a table")
        for layer, segments in self.layer_segments.items():
            if not isinstance(segments, (list, tuple)) or not all(
                isinstance(s, str) and s.strip() for s in segments
            ):
                raise InvalidConfigError(
                    f"layers.{layer}", segments, "expected a list of directory names"
                )

        if not isinstance(self.package_names, (list, tuple)) or not all(
            isinstance(name, str) and name.strip() for name in self.package_names
        ):
            raise InvalidConfigError(
                "package_names", self.package_names, "expected a list of package names"
            )

        # Policy rows are validated by LayerPolicy.from_mapping
        if not isinstance(self.policy, dict):
            raise InvalidConfigError("policy", self.policy, "expected a table")
        LayerPolicy.from_mapping(self.policy)

        for kind, value in self.severities.items():
            try:
                ViolationKind(kind)
            except ValueError:
                raise InvalidConfigError(
                    f"severities.{kind}", value, "unknown violation kind"
                ) from None
            try:
                Severity.from_string(str(value))
            except ValueError as e:
                raise InvalidConfigError(f"severities.{kind}", value, str(e)) from None

        for check in self.enabled_checks:
            try:
                RuleKind.parse(check)
            except ValueError as e:
                raise InvalidConfigError("enabled_checks", check, str(e)) from None

        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")

        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet, normal or verbose")

    # ── Derived collaborators ──────────────────────────────────────

    @property
    def checks(self) -> list[RuleKind]:
        """Enabled checks in configured order, without repeats."""
        result: list[RuleKind] = []
        for check in self.enabled_checks:
            kind = RuleKind.parse(check)
            if kind not in result:
                result.append(kind)
        return result

    def severity_for(self, kind: ViolationKind) -> Severity:
        value = self.severities.get(kind.value, DEFAULT_SEVERITIES[kind.value])
        return Severity.from_string(value)

    def build_classifier(self) -> LayerClassifier:
        return LayerClassifier(self.layer_segments)

    def build_policy(self) -> LayerPolicy:
        custom = LayerPolicy.from_mapping(self.policy, exempt_layers=self.exempt_layers)
        if not self.use_default_policy:
            return custom
        base = LayerPolicy(default_policy().entries, exempt_layers=self.exempt_layers)
        return base.merged(custom)


def load_config(config_file: Optional[Path] = None, **overrides) -> LinterConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated LinterConfig instance

    Raises:
        LayerguardError: If a config file is invalid or missing
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".layerguard.toml"
    if global_config.exists():
        merged.update(_read_config_file(global_config))

    project_config = Path.cwd() / "layerguard.toml"
    pyproject = Path.cwd() / "pyproject.toml"
    if project_config.exists():
        merged.update(_read_config_file(project_config))
    elif pyproject.exists():
        merged.update(_read_config_file(pyproject, section=("tool", "layerguard")))

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise InvalidPathError(config_file, "config file not found")
        merged.update(_read_config_file(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return LinterConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise LayerguardError(f"Invalid configuration: {e}")


def _read_config_file(path: Path, section: tuple[str, ...] = ()) -> dict[str, Any]:
    """Read a TOML file and map its tables onto LinterConfig field names."""
    try:
        data = _load_toml_file(path)
    except LayerguardError:
        raise
    except Exception as e:
        raise LayerguardError(f"Invalid config file '{path}': {e}")

    for key in section:
        data = data.get(key, {})
        if not isinstance(data, dict):
            raise InvalidConfigError(".".join(section), data, "expected a table")

    data = dict(data)
    # [layers] table is the user-facing name of layer_segments
    if "layers" in data:
        data["layer_segments"] = data.pop("layers")
    return data


def _load_env_vars() -> dict[str, Any]:
    """Load scalar configuration from LAYERGUARD_* environment variables.

    Supported environment variables:
        LAYERGUARD_WORKERS: int
        LAYERGUARD_FAIL_ON_CYCLE_ONLY: bool (true/false/1/0)
        LAYERGUARD_USE_DEFAULT_POLICY: bool
        LAYERGUARD_VERBOSITY: quiet/normal/verbose
        LAYERGUARD_ENABLED_CHECKS: comma-separated list
        LAYERGUARD_PACKAGE_NAMES: comma-separated list

    Returns:
        Dict of field_name -> parsed_value for any LAYERGUARD_* vars found.
    """
    type_hints = get_type_hints(LinterConfig)

    result: dict[str, Any] = {}

    for field_name in LinterConfig.__dataclass_fields__:
        env_key = f"LAYERGUARD_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise LayerguardError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns None for types that cannot come from a single string (tables).

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is dict or type_hint is dict:
        return None

    if origin is list or type_hint is list:
        return [item.strip() for item in value.split(",") if item.strip()]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        LayerguardError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise LayerguardError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
