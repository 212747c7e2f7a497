"""``mediaswap lookup URL`` — resolve an image URL to its asset id."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from mediaswap.config import settings
from mediaswap.core.lookup import resolve_asset_id_from_url
from mediaswap.stores.sqlite import CorpusDatabase, SqliteAssetStore

console = Console()


def lookup_cmd(
    url: str = typer.Argument(..., help="Canonical or size-variant image URL."),
    corpus_db: Path = typer.Option(
        settings.corpus_path, "--corpus", "-c", help="Path to the corpus SQLite database."
    ),
) -> None:
    """Print the asset id behind URL."""
    store = SqliteAssetStore(CorpusDatabase(corpus_db))
    asset_id = resolve_asset_id_from_url(store, url)
    if asset_id is None:
        console.print(f"[bold red]No asset found for:[/bold red] {url}")
        raise typer.Exit(code=1)
    console.print(str(asset_id))
