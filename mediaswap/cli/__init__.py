"""mediaswap CLI — Typer-based command-line interface.

Provides the ``mediaswap`` command with subcommands for replacing an asset
across the corpus, discarding a rejected asset, resolving a URL to an
asset id, and reading an operation's journal.

All output uses Rich for formatted terminal display.
"""
