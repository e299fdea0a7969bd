"""terminal summaries of aggregated coverage"""

import json
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from .core import GlobalSummary
from .render import LOW_COVERAGE, MEDIUM_COVERAGE

# Constants
DEFAULT_BAR_WIDTH = 20


def coverage_style(percent: int) -> str:
    if percent < LOW_COVERAGE:
        return "red"
    elif percent < MEDIUM_COVERAGE:
        return "yellow"
    return "green"


def _bar(percent: int, width: int = DEFAULT_BAR_WIDTH) -> str:
    filled = percent * width // 100
    return "█" * filled + "░" * (width - filled)


def generate_summary_data(summary: GlobalSummary) -> Dict[str, Any]:
    """plain data structure for a global summary"""
    return {
        "mode": summary.mode,
        "total": {
            "statements": summary.statement_total,
            "reached": summary.reached,
            "missed": summary.missed,
            "percentage": summary.percentage,
        },
        "files": [
            {
                "module": item.module,
                "file": item.display_file,
                "link": item.output_link,
                "statements": item.statement_total,
                "reached": item.reached,
                "missed": item.missed,
                "percentage": item.percentage,
            }
            for item in summary.modules
        ],
    }


def print_summary_rich(
    summary: GlobalSummary,
    title: str = "",
    verbose: bool = False,
    console: Optional[Console] = None,
):
    """display the global totals and, in verbose mode, every file"""
    console = console or Console()

    style = coverage_style(summary.percentage)
    header = f"[bold cyan]Coverage Summary[/bold cyan]"
    if title:
        header += f"\n[dim]{escape(title)}[/dim]"
    console.print(Panel(header, expand=False))

    totals = Table(show_header=False, box=None)
    totals.add_column("Metric", style="bold")
    totals.add_column("Value", style="cyan")
    totals.add_row("Mode", escape(summary.mode))
    totals.add_row("Files", f"{len(summary.modules):,}")
    totals.add_row("Statements", f"{summary.statement_total:,}")
    totals.add_row("Reached", f"{summary.reached:,}")
    totals.add_row("Missed", f"{summary.missed:,}")
    totals.add_row(
        "Coverage",
        f"[{style}]{summary.percentage}% {_bar(summary.percentage)}[/{style}]",
    )
    console.print(totals)

    if verbose and summary.modules:
        console.print()
        files = Table(title="[bold]Files[/bold]")
        files.add_column("File", style="cyan", no_wrap=True)
        files.add_column("Statements", justify="right", style="yellow")
        files.add_column("Reached", justify="right")
        files.add_column("Missed", justify="right")
        files.add_column("Coverage", justify="right")

        for item in summary.modules:
            item_style = coverage_style(item.percentage)
            files.add_row(
                escape(item.display_file),
                f"{item.statement_total:,}",
                f"{item.reached:,}",
                f"{item.missed:,}",
                f"[{item_style}]{item.percentage}%[/{item_style}]",
            )
        console.print(files)


def print_summary_json(summary: GlobalSummary):
    """output the summary as JSON"""
    print(json.dumps(generate_summary_data(summary), indent=2))
