"""Environment-driven configuration.

Centralized settings using pydantic-settings. Reads from a .env file and
MEDIASWAP_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class SwapSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MEDIASWAP_LOG_LEVEL=DEBUG
        export MEDIASWAP_CORPUS_PATH=/data/corpus.db

    Or via .env file::

        MEDIASWAP_LOG_LEVEL=WARNING
        MEDIASWAP_RESERVED_META_PREFIX=_wp_
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MEDIASWAP_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    corpus_path: Path = Path(".mediaswap/corpus.db")
    journal_path: Path = Path(".mediaswap/journal.db")

    # Markup and metadata conventions of the authoring system
    class_prefix: str = "wp-image-"
    reserved_meta_prefix: str = "_wp_"
    featured_meta_key: str = "_thumbnail_id"
    widget_option_prefix: str = "widget_"


# Module-level singleton: import as `from mediaswap.config import settings`
settings = SwapSettings()
