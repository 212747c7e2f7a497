"""Tests for the SQLite corpus stores."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mediaswap.models.assets import Asset, MetadataBag
from mediaswap.models.documents import Document, SideTableKind
from mediaswap.models.stats import UsageStats
from mediaswap.stores.base import (
    AssetStore,
    DocumentStore,
    NotFoundError,
    SideTableStore,
    StoreWriteError,
)
from mediaswap.stores.sqlite import Corpus


class TestProtocols:
    def test_stores_satisfy_protocols(self, corpus: Corpus):
        assert isinstance(corpus.assets, AssetStore)
        assert isinstance(corpus.documents, DocumentStore)
        for table in corpus.side_tables:
            assert isinstance(table, SideTableStore)

    def test_side_table_order(self, corpus: Corpus):
        assert [t.kind for t in corpus.side_tables] == [
            SideTableKind.DOCUMENT_META,
            SideTableKind.WIDGET,
            SideTableKind.OPTION,
        ]


class TestSqliteAssetStore:
    def test_round_trip(self, seeded_corpus: Corpus, original_asset: Asset):
        assert seeded_corpus.assets.resolve(42) == original_asset

    def test_resolve_missing(self, corpus: Corpus):
        with pytest.raises(NotFoundError):
            corpus.assets.resolve(1)

    def test_update_metadata_replaces_bag(self, seeded_corpus: Corpus):
        bag = MetadataBag(title="t", alt_text="alt", fields={"k": ["1", "2"]})
        seeded_corpus.assets.update_metadata(99, bag)
        assert seeded_corpus.assets.resolve(99).metadata == bag

    def test_update_metadata_missing(self, corpus: Corpus):
        with pytest.raises(NotFoundError):
            corpus.assets.update_metadata(1, MetadataBag())

    def test_delete_cascades_fields(self, seeded_corpus: Corpus):
        seeded_corpus.assets.delete(42)
        with pytest.raises(NotFoundError):
            seeded_corpus.assets.resolve(42)
        with seeded_corpus.db.connect() as conn:
            count = conn.execute(
                "SELECT COUNT(*) FROM asset_fields WHERE asset_id = 42"
            ).fetchone()[0]
        assert count == 0

    def test_delete_missing(self, corpus: Corpus):
        with pytest.raises(NotFoundError):
            corpus.assets.delete(1)

    def test_find_by_url(self, seeded_corpus: Corpus):
        assert seeded_corpus.assets.find_by_url("http://x/b.png") == 99
        assert seeded_corpus.assets.find_by_url("http://x/c.png") is None

    def test_find_by_file_suffix(self, seeded_corpus: Corpus):
        assert seeded_corpus.assets.find_by_file_suffix("a.png") == 42
        assert seeded_corpus.assets.find_by_file_suffix("2026/10/b.png") == 99
        assert seeded_corpus.assets.find_by_file_suffix("") is None


class TestSqliteDocumentStore:
    def test_find_candidates_any_term(self, corpus: Corpus):
        corpus.documents.add(Document(document_id=1, content="alpha"))
        corpus.documents.add(Document(document_id=2, content="beta"))
        corpus.documents.add(Document(document_id=3, content="gamma"))
        found = corpus.documents.find_candidates({"alp", "gam"})
        assert [d.document_id for d in found] == [1, 3]

    def test_containment_is_literal(self, corpus: Corpus):
        corpus.documents.add(Document(document_id=1, content="100%_done"))
        corpus.documents.add(Document(document_id=2, content="100 percent"))
        found = corpus.documents.find_candidates({"100%_"})
        assert [d.document_id for d in found] == [1]

    def test_no_terms(self, corpus: Corpus):
        corpus.documents.add(Document(document_id=1, content="alpha"))
        assert corpus.documents.find_candidates(set()) == []

    def test_write_content(self, corpus: Corpus):
        corpus.documents.add(Document(document_id=1, content="old", title="T"))
        corpus.documents.write_content(1, "new")
        assert corpus.documents.get(1) == Document(document_id=1, content="new", title="T")

    def test_write_missing_document(self, corpus: Corpus):
        with pytest.raises(NotFoundError):
            corpus.documents.write_content(5, "x")


class TestSideTables:
    def test_document_meta_entry(self, corpus: Corpus):
        entry = corpus.document_meta.add(7, "_thumbnail_id", "42")
        assert entry.owner_id == 7
        assert entry.label == "_thumbnail_id"
        assert corpus.document_meta.get_for_document(7, "_thumbnail_id") == [entry]

    def test_find_equal_by_label(self, corpus: Corpus):
        featured = corpus.document_meta.add(7, "_thumbnail_id", "42")
        corpus.document_meta.add(7, "other", "42")
        assert corpus.document_meta.find_entries_equal("42", label="_thumbnail_id") == [
            featured
        ]
        assert len(corpus.document_meta.find_entries_equal("42")) == 2

    def test_document_meta_write_missing(self, corpus: Corpus):
        with pytest.raises(StoreWriteError):
            corpus.document_meta.write_entry("12", "x")
        with pytest.raises(StoreWriteError):
            corpus.document_meta.write_entry("not-a-number", "x")

    def test_widget_and_option_split(self, corpus: Corpus):
        corpus.options.set("widget_media_image", "i:42;")
        corpus.options.set("site_icon", "i:42;")
        assert [e.key for e in corpus.widgets.find_entries_containing(":42;")] == [
            "widget_media_image"
        ]
        assert [e.key for e in corpus.options.find_entries_containing(":42;")] == [
            "site_icon"
        ]

    def test_option_set_overwrites(self, corpus: Corpus):
        corpus.options.set("site_icon", "1")
        corpus.options.set("site_icon", "2")
        assert corpus.options.get("site_icon").value == "2"

    def test_option_write_entry(self, corpus: Corpus):
        corpus.options.set("site_icon", "42")
        corpus.options.write_entry("site_icon", "99")
        assert corpus.options.get("site_icon").value == "99"
        with pytest.raises(StoreWriteError):
            corpus.options.write_entry("missing", "99")

    def test_option_get_missing(self, corpus: Corpus):
        with pytest.raises(NotFoundError):
            corpus.options.get("missing")


class TestSqliteUsageStore:
    def test_defaults_when_empty(self, corpus: Corpus):
        assert corpus.usage.load() == UsageStats()

    def test_save_overwrites_single_row(self, corpus: Corpus):
        when = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
        corpus.usage.save(UsageStats(total=1, successful=1))
        corpus.usage.save(UsageStats(total=3, successful=2, failed=1, last_operation_at=when))
        assert corpus.usage.load() == UsageStats(
            total=3, successful=2, failed=1, last_operation_at=when
        )
        with corpus.db.connect() as conn:
            assert conn.execute("SELECT COUNT(*) FROM usage_stats").fetchone()[0] == 1
