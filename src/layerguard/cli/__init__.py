"""CLI entry point — registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="layerguard",
    help="layerguard - Architecture conformance checks for layered codebases",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        is_eager=True,
    ),
):
    """Check module dependencies against layer rules and find import cycles."""
    if version:
        console.print(f"[bold cyan]layerguard[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


# Import subcommands to register them
from .check import check as _check  # noqa: F401, E402
from .graph import graph as _graph  # noqa: F401, E402
