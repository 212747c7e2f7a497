"""``mediaswap discard ASSET_ID`` — delete a rejected generated asset."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from mediaswap.config import settings
from mediaswap.core.orchestrator import ReplacementOrchestrator
from mediaswap.stores.base import NotFoundError

console = Console()


def discard_cmd(
    asset_id: int = typer.Argument(..., help="Asset id to delete."),
    corpus_db: Path = typer.Option(
        settings.corpus_path, "--corpus", "-c", help="Path to the corpus SQLite database."
    ),
    journal_db: Path = typer.Option(
        settings.journal_path, "--journal", "-j", help="Path to the journal SQLite database."
    ),
) -> None:
    """Delete ASSET_ID from the asset store."""
    orchestrator = ReplacementOrchestrator.open(corpus_db, journal_db, settings=settings)
    try:
        orchestrator.discard(asset_id)
    except NotFoundError as exc:
        console.print(f"[bold red]Cannot discard:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]Asset {asset_id} discarded.[/green]")
