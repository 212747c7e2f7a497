"""``mediaswap replace ORIGINAL_ID REPLACEMENT_ID`` — promote a replacement.

Rewrites every reference to the original asset across documents and side
tables, copies its metadata onto the replacement, and prints the summary.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mediaswap.config import settings
from mediaswap.core.orchestrator import ReplacementError, ReplacementOrchestrator
from mediaswap.models.operations import ReplacementResult, StepState
from mediaswap.models.stats import UsageStats
from mediaswap.stores.base import NotFoundError

console = Console()

_STATE_STYLES: dict[StepState, str] = {
    StepState.PASSED: "bold green",
    StepState.FAILED: "bold red",
    StepState.RUNNING: "yellow",
    StepState.PENDING: "dim",
}


def render_result(result: ReplacementResult, usage: UsageStats | None = None) -> Panel:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Step")
    table.add_column("State", justify="center")
    table.add_column("Changed", justify="right")
    table.add_column("Failed", justify="right")
    for outcome in result.steps:
        style = _STATE_STYLES.get(outcome.state, "")
        table.add_row(
            outcome.step.value,
            f"[{style}]{outcome.state.value}[/{style}]",
            str(outcome.changed),
            str(outcome.failed),
        )

    lines = [
        f"[bold]Operation:[/bold]         {result.operation_id}",
        f"[bold]Original:[/bold]          {result.original_id}",
        f"[bold]Replacement:[/bold]       {result.replacement_id}",
        f"[bold]Replacement URL:[/bold]   {result.replacement_url}",
        f"[bold]Documents changed:[/bold] {result.documents_changed}",
        f"[bold]Side entries:[/bold]      {result.side_entries_changed}",
    ]
    if result.dangling_variants:
        lines.append(
            f"[yellow]Unresolved original sizes:[/yellow] "
            f"{', '.join(result.dangling_variants)}"
        )
    if usage is not None:
        lines.append(
            f"[dim]Replacements so far: {usage.total} "
            f"({usage.successful} ok, {usage.failed} failed)[/dim]"
        )
    border = "green" if result.succeeded else "red"
    return Panel(
        Group(Text.from_markup("\n".join(lines)), Text(""), table),
        title="[bold]Replacement[/bold]",
        border_style=border,
    )


def replace_cmd(
    original_id: int = typer.Argument(..., help="Asset id being replaced."),
    replacement_id: int = typer.Argument(..., help="Asset id to point references at."),
    corpus_db: Path = typer.Option(
        settings.corpus_path, "--corpus", "-c", help="Path to the corpus SQLite database."
    ),
    journal_db: Path = typer.Option(
        settings.journal_path, "--journal", "-j", help="Path to the journal SQLite database."
    ),
) -> None:
    """Replace every reference to ORIGINAL_ID with REPLACEMENT_ID."""
    orchestrator = ReplacementOrchestrator.open(corpus_db, journal_db, settings=settings)
    try:
        result = orchestrator.replace(original_id, replacement_id)
    except (NotFoundError, ValueError) as exc:
        console.print(f"[bold red]Cannot replace:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except ReplacementError as exc:
        console.print(render_result(exc.result, orchestrator.usage.snapshot()))
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)

    console.print(render_result(result, orchestrator.usage.snapshot()))
    # The replacement URL plainly, for scripting
    console.print(result.replacement_url)
