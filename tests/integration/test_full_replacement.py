"""End-to-end replacement over a realistic corpus.

Exercises the orchestrator, scanner, rewrite engine, propagator, cloner,
step machine, journal and SQLite stores working together through
``ReplacementOrchestrator.open``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from mediaswap.config import SwapSettings
from mediaswap.core.orchestrator import ReplacementOrchestrator
from mediaswap.core.rewrite import RewriteEngine
from mediaswap.core.usage_stats import UsageCounter
from mediaswap.models.assets import Asset
from mediaswap.models.documents import Document
from mediaswap.models.operations import StepState
from mediaswap.stores.sqlite import Corpus

POST_CLASSIC = (
    '[caption id="attachment_42" align="alignnone" width="300"]'
    '<img class="size-medium wp-image-42" src="http://x/a-300x200.png" '
    'alt="a dog" width="300" height="200" /> Our dog[/caption]'
)

POST_BLOCKS = (
    '<!-- wp:image {"id":42,"sizeSlug":"large","linkDestination":"none"} -->\n'
    '<figure class="wp-block-image size-large"><img src="http://x/a.png" '
    'alt="" class="wp-image-42" srcset="http://x/a-1024x768.png 1024w, '
    'http://x/a-300x200.png 300w" sizes="(max-width: 1024px) 100vw, 1024px"/></figure>\n'
    "<!-- /wp:image -->\n"
    '<!-- wp:gallery {"ids":[41,42]} -->[gallery ids="41,42" columns="2"]<!-- /wp:gallery -->'
)

POST_UNRELATED = '<p>See <img class="wp-image-420" src="http://x/a2.png"></p>'


@pytest.fixture
def site(tmp_path: Path, original_asset: Asset, replacement_asset: Asset) -> Corpus:
    corpus = Corpus(tmp_path / "corpus.db")
    corpus.assets.add(original_asset)
    corpus.assets.add(replacement_asset)
    corpus.documents.add(Document(document_id=10, title="Classic", content=POST_CLASSIC))
    corpus.documents.add(Document(document_id=11, title="Blocks", content=POST_BLOCKS))
    corpus.documents.add(Document(document_id=12, title="Other", content=POST_UNRELATED))
    corpus.document_meta.add(10, "_thumbnail_id", "42")
    corpus.document_meta.add(12, "_thumbnail_id", "420")
    corpus.widgets.set(
        "widget_media_image",
        'a:1:{i:2;a:2:{s:13:"attachment_id";i:42;s:3:"url";s:14:"http://x/a.png";}}',
    )
    corpus.options.set("site_icon", "42")
    corpus.options.set("theme_mods", '{"custom_logo":"42","header":"http://x/a.png"}')
    return corpus


@pytest.fixture
def orch(tmp_path: Path, site: Corpus) -> ReplacementOrchestrator:
    return ReplacementOrchestrator.open(
        site.db.path,
        tmp_path / "journal.db",
        settings=SwapSettings(_env_file=None),
        usage=UsageCounter(),
    )


class TestFullReplacement:
    def test_aggregate_result(self, orch: ReplacementOrchestrator):
        result = orch.replace(42, 99)
        assert result.succeeded is True
        assert result.documents_changed == 2
        assert result.side_entries_changed == 4
        assert result.replacement_url == "http://x/b.png"
        assert all(o.state == StepState.PASSED for o in result.steps)

    def test_classic_post(self, orch: ReplacementOrchestrator, site: Corpus):
        orch.replace(42, 99)
        assert site.documents.get(10).content == (
            '[caption id="attachment_99" align="alignnone" width="300"]'
            '<img class="size-medium wp-image-99" src="http://x/b-300x200.png" '
            'alt="a dog" width="300" height="200" /> Our dog[/caption]'
        )

    def test_block_post_drops_stale_srcset(self, orch: ReplacementOrchestrator, site: Corpus):
        result = orch.replace(42, 99)
        assert site.documents.get(11).content == (
            '<!-- wp:image {"id":99,"sizeSlug":"large","linkDestination":"none"} -->\n'
            '<figure class="wp-block-image size-large"><img src="http://x/b.png" '
            'alt="" class="wp-image-99" sizes="(max-width: 1024px) 100vw, 1024px"/></figure>\n'
            "<!-- /wp:image -->\n"
            '<!-- wp:gallery {"ids":[41,42]} -->[gallery ids="41,99" columns="2"]'
            "<!-- /wp:gallery -->"
        )
        assert result.dangling_variants == []

    def test_unrelated_post_untouched(self, orch: ReplacementOrchestrator, site: Corpus):
        orch.replace(42, 99)
        assert site.documents.get(12).content == POST_UNRELATED
        assert site.document_meta.get_for_document(12, "_thumbnail_id")[0].value == "420"

    def test_side_tables(self, orch: ReplacementOrchestrator, site: Corpus):
        orch.replace(42, 99)
        assert site.document_meta.get_for_document(10, "_thumbnail_id")[0].value == "99"
        assert site.widgets.get("widget_media_image").value == (
            'a:1:{i:2;a:2:{s:13:"attachment_id";i:99;s:3:"url";s:14:"http://x/b.png";}}'
        )
        assert site.options.get("site_icon").value == "99"
        assert site.options.get("theme_mods").value == (
            '{"custom_logo":"99","header":"http://x/b.png"}'
        )

    def test_metadata_snapshot(self, orch: ReplacementOrchestrator, site: Corpus):
        orch.replace(42, 99)
        original = site.assets.resolve(42).metadata
        replacement = site.assets.resolve(99).metadata
        assert (replacement.title, replacement.description, replacement.caption) == (
            original.title,
            original.description,
            original.caption,
        )
        assert replacement.alt_text == "a dog"
        assert replacement.fields["foo"] == ["bar"]
        assert "_wp_attached_file" not in replacement.fields

    def test_rewrite_is_exhaustive(
        self, orch: ReplacementOrchestrator, site: Corpus,
        original_asset: Asset, replacement_asset: Asset,
    ):
        orch.replace(42, 99)
        engine = RewriteEngine(original_asset, replacement_asset)
        for document_id in (10, 11, 12):
            assert engine.rewrite(site.documents.get(document_id).content).changed is False

    def test_second_run_changes_nothing(self, orch: ReplacementOrchestrator):
        orch.replace(42, 99)
        again = orch.replace(42, 99)
        assert again.documents_changed == 0
        assert again.side_entries_changed == 0

    def test_chained_edit(
        self, orch: ReplacementOrchestrator, site: Corpus, make_asset
    ):
        site.assets.add(make_asset(150, "c", sizes={"medium": (300, 200)}))
        orch.replace(42, 99)
        result = orch.replace(99, 150)
        assert result.documents_changed == 2
        assert "wp-image-150" in site.documents.get(10).content
        assert "http://x/c-300x200.png" in site.documents.get(10).content
        assert site.options.get("site_icon").value == "150"
        assert site.assets.resolve(150).metadata.alt_text == "a dog"

    def test_journal_has_per_subject_detail(self, orch: ReplacementOrchestrator):
        result = orch.replace(42, 99)
        subjects = {e.subject for e in orch.journal.get_subject_outcomes(result.operation_id)}
        assert subjects == {
            "document:10",
            "document:11",
            "document_meta:1",
            "widget:widget_media_image",
            "option:site_icon",
            "option:theme_mods",
        }
        assert orch.journal.get_all_operation_ids() == [result.operation_id]
        assert orch.usage.snapshot().successful == 1
