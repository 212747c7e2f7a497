"""Main Typer application — imports and registers all CLI commands.

Entry point: ``mediaswap`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from mediaswap.config import settings
from mediaswap.cli.commands.discard import discard_cmd
from mediaswap.cli.commands.journal_cmd import journal_cmd
from mediaswap.cli.commands.lookup import lookup_cmd
from mediaswap.cli.commands.replace import replace_cmd
from mediaswap.cli.commands.stats import stats_cmd

app = typer.Typer(
    name="mediaswap",
    help="mediaswap: redirect image references from an original asset to its replacement.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        settings.log_level, "--log-level", help="Logging level (DEBUG, INFO, ...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=settings.debug)],
    )


# Register subcommands
app.command(name="replace", help="Replace every reference to an asset.")(replace_cmd)
app.command(name="discard", help="Delete a rejected generated asset.")(discard_cmd)
app.command(name="lookup", help="Resolve an image URL to its asset id.")(lookup_cmd)
app.command(name="journal", help="Show the journal of a replacement operation.")(journal_cmd)
app.command(name="stats", help="Show replacement usage counts for a corpus.")(stats_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
