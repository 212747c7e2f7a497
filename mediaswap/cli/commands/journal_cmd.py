"""``mediaswap journal OPERATION_ID`` — show an operation's journal.

Lists step transitions and per-document/per-entry outcomes in the order
they were recorded.  With no operation id, lists known operations.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mediaswap.config import settings
from mediaswap.core.journal import ReplacementJournal

console = Console()


def journal_cmd(
    operation_id: str = typer.Argument(None, help="Operation id to show."),
    subjects_only: bool = typer.Option(
        False, "--subjects", "-s", help="Only per-document/per-entry outcomes."
    ),
    journal_db: Path = typer.Option(
        settings.journal_path, "--journal", "-j", help="Path to the journal SQLite database."
    ),
) -> None:
    """Show the journal for OPERATION_ID."""
    if not journal_db.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        raise typer.Exit(code=1)
    journal = ReplacementJournal(journal_db)

    if operation_id is None:
        for op in journal.get_all_operation_ids():
            console.print(op)
        return

    entries = (
        journal.get_subject_outcomes(operation_id)
        if subjects_only
        else journal.get_operation_entries(operation_id)
    )
    if not entries:
        console.print(f"[dim]No entries for {operation_id}.[/dim]")
        raise typer.Exit(code=1)

    table = Table(title=f"Operation {operation_id}")
    table.add_column("Time", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Transition / Event")
    table.add_column("Subject")
    table.add_column("Detail")
    for entry in entries:
        table.add_row(
            entry.timestamp_utc.strftime("%H:%M:%S"),
            entry.step,
            entry.transition or entry.event,
            entry.subject,
            entry.detail,
        )
    console.print(table)
