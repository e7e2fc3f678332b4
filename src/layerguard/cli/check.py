"""Conformance check command — the CI gate."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from ..analysis.engine import AnalysisEngine
from ..exceptions import LayerguardError
from ..formatters import get_formatter
from ..io import load_descriptors
from ..logging_config import setup_logging
from . import app
from ._common import EXIT_ERROR, EXIT_OK, EXIT_VIOLATIONS, console, resolve_config

_FORMATS = ("rich", "json", "github", "quiet")


@app.command()
def check(
    descriptors: Path = typer.Argument(
        ...,
        help="Module descriptor JSON produced by your parser",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: rich, json, github (Actions annotations) or quiet",
    ),
    fail_on_cycle_only: bool = typer.Option(
        False,
        "--fail-on-cycle-only",
        help="Exit non-zero only for circular dependencies",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Threads for per-file edge collection",
        min=1,
        max=32,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress logging",
    ),
):
    """
    Check module dependencies against the layer policy and find cycles.

    Exit code 0 when nothing fails, 1 when violations fail the check,
    2 on configuration or input errors.

    [bold cyan]Examples:[/bold cyan]

      layerguard check modules.json

      layerguard check modules.json --format github

      layerguard check modules.json --fail-on-cycle-only
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    if fmt not in _FORMATS:
        console.print(f"[red]Error:[/red] unknown format {escape(repr(fmt))}; choose from {', '.join(_FORMATS)}")
        raise typer.Exit(EXIT_ERROR)

    try:
        settings = resolve_config(
            config=config,
            fail_on_cycle_only=fail_on_cycle_only,
            workers=workers,
            verbose=verbose,
            quiet=quiet,
        )

        modules = load_descriptors(descriptors)
        engine = AnalysisEngine(settings)
        result = engine.run(modules)

        get_formatter(fmt).render(result.violations, result)

        failing = result.failing(cycles_only=settings.fail_on_cycle_only)
        if settings.fail_on_cycle_only and result.violations and not result.has_cycles:
            logger.info("No circular dependencies; other violations do not fail this run")
        raise typer.Exit(EXIT_VIOLATIONS if failing else EXIT_OK)

    except typer.Exit:
        raise
    except LayerguardError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)
