"""
Rendering of compilation diagnostics.

Plain text is one ``path:line:column: message {key=value, ...}`` line per
diagnostic; the table view uses Rich; JSON is meant for automation.
"""

import json
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .diagnostics import CompilationDiagnostic
from .pipeline import ExperimentResult

OUTPUT_FORMATS = ("text", "table", "json")


def render_text(diagnostics: Sequence[CompilationDiagnostic]) -> str:
    return "\n".join(str(d) for d in diagnostics)


def render_json(
    diagnostics: Sequence[CompilationDiagnostic],
    result: Optional[ExperimentResult] = None,
) -> str:
    if result is not None:
        payload = result.to_dict()
    else:
        payload = {"diagnostics": [d.to_dict() for d in diagnostics]}
    payload["total_diagnostics"] = len(diagnostics)
    return json.dumps(payload, indent=2, ensure_ascii=False)


class DiagnosticReporter:
    """Formats and displays compilation diagnostics."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _print_plain(self, text: str) -> None:
        # Paths and [line,column] brackets must not be read as Rich markup
        self.console.print(
            text, markup=False, highlight=False, emoji=False, soft_wrap=True
        )

    def print_text(self, diagnostics: Sequence[CompilationDiagnostic]) -> None:
        if diagnostics:
            self._print_plain(render_text(diagnostics))

    def print_table(
        self,
        diagnostics: Sequence[CompilationDiagnostic],
        title: str,
        exit_status: Optional[int] = None,
    ) -> None:
        self.console.print(
            Panel(Text(title), title="[bold blue]compat-probe[/bold blue]", border_style="blue")
        )

        if not diagnostics:
            self.console.print("✅ No compilation errors found.", style="green")
        else:
            table = Table(
                title=f"🔧 {len(diagnostics)} compilation error(s)",
                box=box.ROUNDED,
                title_style="bold cyan",
            )
            table.add_column("Location", style="bold", overflow="fold")
            table.add_column("Message", style="red")
            table.add_column("Parameters", style="dim")

            for diagnostic in diagnostics:
                # Compiler output is plain text, never Rich markup
                table.add_row(
                    Text(f"{diagnostic.source_path}:{diagnostic.line}:{diagnostic.column}"),
                    Text(diagnostic.message),
                    Text("\n".join(f"{k}: {v}" for k, v in diagnostic.parameters.items())),
                )
            self.console.print(table)

        if exit_status is not None:
            style = "green" if exit_status == 0 else "yellow"
            self.console.print(f"Build finished with exit status {exit_status}", style=style)

    def report(
        self,
        diagnostics: List[CompilationDiagnostic],
        output_format: str = "text",
        title: str = "Compilation diagnostics",
        result: Optional[ExperimentResult] = None,
    ) -> None:
        """Print diagnostics in the requested format."""
        if output_format == "json":
            self._print_plain(render_json(diagnostics, result))
        elif output_format == "table":
            self.print_table(
                diagnostics, title, result.exit_status if result is not None else None
            )
        else:
            self.print_text(diagnostics)
