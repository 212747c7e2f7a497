"""Shared test fixtures for mediaswap."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mediaswap.config import SwapSettings
from mediaswap.core.journal import ReplacementJournal
from mediaswap.core.orchestrator import ReplacementOrchestrator
from mediaswap.core.usage_stats import UsageCounter
from mediaswap.models.assets import Asset, MetadataBag, SizeVariant
from mediaswap.stores.sqlite import Corpus


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases."""
    return tmp_path


@pytest.fixture
def corpus(tmp_dir: Path) -> Corpus:
    """Provide an empty corpus backed by a temp SQLite database."""
    return Corpus(tmp_dir / "corpus.db")


@pytest.fixture
def journal(tmp_dir: Path) -> ReplacementJournal:
    """Provide a fresh ReplacementJournal backed by a temp SQLite database."""
    return ReplacementJournal(tmp_dir / "journal.db")


@pytest.fixture
def swap_settings() -> SwapSettings:
    return SwapSettings(_env_file=None)


# ---------------------------------------------------------------------------
# Asset factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_asset() -> Callable[..., Asset]:
    """Factory fixture: build an Asset whose variants follow the -WxH naming."""

    def _factory(
        asset_id: int,
        stem: str,
        *,
        base_url: str = "http://x",
        sizes: dict[str, tuple[int, int]] | None = None,
        **overrides: Any,
    ) -> Asset:
        sizes = sizes if sizes is not None else {}
        defaults: dict[str, Any] = {
            "asset_id": asset_id,
            "canonical_url": f"{base_url}/{stem}.png",
            "attached_file": f"2026/10/{stem}.png",
            "variants": {
                name: SizeVariant(
                    name=name, file=f"{stem}-{w}x{h}.png", width=w, height=h
                )
                for name, (w, h) in sizes.items()
            },
        }
        defaults.update(overrides)
        return Asset(**defaults)

    return _factory


@pytest.fixture
def original_asset(make_asset: Callable[..., Asset]) -> Asset:
    """Asset 42 at http://x/a.png with thumbnail, medium and large sizes."""
    return make_asset(
        42,
        "a",
        sizes={"thumbnail": (150, 150), "medium": (300, 200), "large": (1024, 768)},
        metadata=MetadataBag(
            title="Dog",
            description="A good dog",
            caption="Our dog",
            alt_text="a dog",
            fields={
                "foo": ["bar"],
                "_wp_attached_file": ["2026/10/a.png"],
                "_edit_lock": ["1700000000:1"],
            },
        ),
    )


@pytest.fixture
def replacement_asset(make_asset: Callable[..., Asset]) -> Asset:
    """Asset 99 at http://x/b.png with thumbnail and medium only (no large)."""
    return make_asset(
        99,
        "b",
        sizes={"thumbnail": (150, 150), "medium": (300, 200)},
        metadata=MetadataBag(
            title="a_1760000000",
            caption="Edited. Prompt: make it sunny",
            fields={"_wp_attachment_metadata": ["{}"]},
        ),
    )


@pytest.fixture
def seeded_corpus(
    corpus: Corpus, original_asset: Asset, replacement_asset: Asset
) -> Corpus:
    """Corpus holding assets 42 and 99 and no documents."""
    corpus.assets.add(original_asset)
    corpus.assets.add(replacement_asset)
    return corpus


@pytest.fixture
def orchestrator(
    seeded_corpus: Corpus, journal: ReplacementJournal, swap_settings: SwapSettings
) -> ReplacementOrchestrator:
    """Orchestrator wired to the seeded corpus and test journal."""
    return ReplacementOrchestrator(
        seeded_corpus.assets,
        seeded_corpus.documents,
        seeded_corpus.side_tables,
        journal,
        settings=swap_settings,
        usage=UsageCounter(),
    )
