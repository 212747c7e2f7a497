"""``mediaswap stats`` — show the corpus's replacement usage counts."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mediaswap.config import settings
from mediaswap.stores.sqlite import CorpusDatabase, SqliteUsageStore

console = Console()


def stats_cmd(
    corpus_db: Path = typer.Option(
        settings.corpus_path, "--corpus", "-c", help="Path to the corpus SQLite database."
    ),
) -> None:
    """Print how many replacements have run against the corpus."""
    stats = SqliteUsageStore(CorpusDatabase(corpus_db)).load()

    table = Table(title="Replacement usage", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(stats.total))
    table.add_row("Successful", str(stats.successful))
    table.add_row("Failed", str(stats.failed))
    last = stats.last_operation_at
    table.add_row("Last used", last.strftime("%Y-%m-%d %H:%M:%S") if last else "never")
    console.print(table)
