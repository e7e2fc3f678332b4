"""Rich terminal formatter for layerguard."""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..analysis.engine import AnalysisResult
from ..models import Severity, Violation, ViolationKind
from .base import BaseFormatter

console = Console()

_KIND_LABELS = {
    ViolationKind.LAYER_VIOLATION: "layer",
    ViolationKind.CIRCULAR_DEPENDENCY: "cycle",
    ViolationKind.BOUNDARY_CROSSING: "boundary",
}


def _severity_label(severity: Severity) -> str:
    if severity is Severity.ERROR:
        return "[red bold]error[/red bold]"
    elif severity is Severity.WARNING:
        return "[yellow]warning[/yellow]"
    else:
        return "[dim]info[/dim]"


class RichFormatter(BaseFormatter):
    """Rich terminal output: violation table followed by suggestions."""

    def __init__(self, target: Optional[Console] = None):
        self.console = target if target is not None else console

    def render(self, violations: List[Violation], result: AnalysisResult) -> None:
        self._print_summary(violations, result)
        if violations:
            self._print_table(violations)
            self._print_suggestions(violations)

    def format(self, violations: List[Violation], result: AnalysisResult) -> str:
        with self.console.capture() as capture:
            self.render(violations, result)
        return capture.get()

    def _print_summary(self, violations: List[Violation], result: AnalysisResult) -> None:
        stats = result.stats
        self.console.print(
            f"[bold cyan]layerguard[/bold cyan]  "
            f"{stats['modules']} modules, {stats['edges']} edges, "
            f"{stats['external_modules']} external"
        )
        if stats["skipped"]:
            self.console.print(f"[yellow]{stats['skipped']} malformed records skipped[/yellow]")
        if not violations:
            self.console.print("[green]No architecture violations found[/green]")
            return

        counts = result.counts
        parts = [
            f"{counts[kind.value]} {_KIND_LABELS[kind]}"
            for kind in ViolationKind
            if counts[kind.value]
        ]
        self.console.print(f"[red]{len(violations)} violations[/red] ({', '.join(parts)})")
        self.console.print()

    def _print_table(self, violations: List[Violation]) -> None:
        table = Table(show_header=True, header_style="bold", expand=False)
        table.add_column("Severity")
        table.add_column("Kind")
        table.add_column("Location", style="cyan", no_wrap=True)
        table.add_column("Message")

        for v in violations:
            table.add_row(
                _severity_label(v.severity),
                _KIND_LABELS[v.kind],
                escape(str(v.location)),
                escape(v.message),
            )
        self.console.print(table)

    def _print_suggestions(self, violations: List[Violation]) -> None:
        # One line per distinct suggestion, in report order
        seen: set[str] = set()
        self.console.print()
        self.console.print("[bold]Suggestions:[/bold]")
        for v in violations:
            if v.suggestion and v.suggestion not in seen:
                seen.add(v.suggestion)
                self.console.print(f"  [dim]•[/dim] {escape(v.suggestion)}", highlight=False)
