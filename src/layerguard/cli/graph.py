"""Graph command — inspect the module graph the checks run on."""

import json
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..analysis.engine import AnalysisEngine
from ..exceptions import LayerguardError
from ..graph.models import ModuleGraph
from ..io import load_descriptors
from ..logging_config import setup_logging
from . import app
from ._common import EXIT_ERROR, console, resolve_config

_FORMATS = ("rich", "json")


@app.command()
def graph(
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
        help="Output format: rich (human-readable) or json",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every module"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress logging"),
):
    """
    Show modules, their layers and the import edges between them.

    [bold cyan]Examples:[/bold cyan]

      layerguard graph modules.json

      layerguard graph modules.json --format json | jq '.edges'
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    if fmt not in _FORMATS:
        console.print(f"[red]Error:[/red] unknown format {escape(repr(fmt))}; choose from {', '.join(_FORMATS)}")
        raise typer.Exit(EXIT_ERROR)

    try:
        settings = resolve_config(config=config, verbose=verbose, quiet=quiet)
        module_graph = AnalysisEngine(settings).build(load_descriptors(descriptors))

        if fmt == "json":
            _output_json(module_graph)
        else:
            _output_rich(module_graph, verbose=verbose)

    except LayerguardError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)


def _output_json(module_graph: ModuleGraph):
    output = {
        "summary": module_graph.stats(),
        "modules": [
            {
                "id": module.id,
                "layer": module.layer,
                "external": module.external,
                "imports": sorted(module_graph.neighbors(module.id)),
                "imported_by": sorted(module_graph.importers(module.id)),
            }
            for _, module in sorted(module_graph.modules.items())
        ],
        "edges": [
            {
                "source": edge.source,
                "target": edge.target,
                "location": edge.location.to_dict(),
                "import": edge.raw_import,
            }
            for edge in module_graph.edges()
        ],
    }
    print(json.dumps(output, indent=2))


def _output_rich(module_graph: ModuleGraph, verbose: bool = False):
    out = Console()
    stats = module_graph.stats()
    out.print(
        f"[bold cyan]Module graph[/bold cyan]  {stats['modules']} modules, "
        f"{stats['edges']} edges, {stats['external_modules']} external"
    )
    out.print()

    layers = Counter(m.layer for m in module_graph.internal_modules())
    table = Table(title="Layers", show_header=True, header_style="bold")
    table.add_column("Layer")
    table.add_column("Modules", justify="right")
    for layer, count in sorted(layers.items()):
        table.add_row(escape(layer), str(count))
    out.print(table)

    if not verbose:
        return

    modules = Table(title="Modules", show_header=True, header_style="bold")
    modules.add_column("Module", style="cyan")
    modules.add_column("Layer")
    modules.add_column("Imports", justify="right")
    modules.add_column("Imported by", justify="right")
    for module in module_graph.internal_modules():
        modules.add_row(
            escape(module.id),
            escape(module.layer),
            str(len(module_graph.neighbors(module.id))),
            str(len(module_graph.importers(module.id))),
        )
    out.print(modules)
