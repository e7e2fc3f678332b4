"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import LinterConfig, load_config

# Diagnostics go to stderr so report output on stdout stays machine-readable
console = Console(stderr=True)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def resolve_config(
    config: Optional[Path] = None,
    fail_on_cycle_only: bool = False,
    workers: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> LinterConfig:
    """Build config from CLI options."""
    overrides = {}
    if fail_on_cycle_only:
        overrides["fail_on_cycle_only"] = True
    if workers is not None:
        overrides["workers"] = workers
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)
