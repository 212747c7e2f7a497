"""Tests for the DocumentScanner pre-filter."""

from __future__ import annotations

from mediaswap.core.scanner import DocumentScanner
from mediaswap.models.assets import Asset
from mediaswap.models.documents import Document
from mediaswap.stores.sqlite import Corpus


def _add(corpus: Corpus, document_id: int, content: str) -> None:
    corpus.documents.add(Document(document_id=document_id, content=content))


class TestDocumentScanner:
    def test_filter_terms(self, corpus: Corpus, original_asset: Asset):
        scanner = DocumentScanner(corpus.documents)
        assert scanner.filter_terms(original_asset) == {
            "wp-image-42",
            '"id":42',
            "http://x/a.png",
        }

    def test_filter_terms_without_url(self, corpus: Corpus, make_asset):
        scanner = DocumentScanner(corpus.documents, class_prefix="media-")
        assert scanner.filter_terms(make_asset(5, "x", canonical_url="")) == {
            "media-5",
            '"id":5',
        }

    def test_returns_candidates_in_id_order(self, corpus: Corpus, original_asset: Asset):
        _add(corpus, 3, '<!-- wp:image {"id":42} -->')
        _add(corpus, 1, '<img src="http://x/a.png">')
        _add(corpus, 2, '<img class="wp-image-42">')
        found = DocumentScanner(corpus.documents).scan(original_asset)
        assert [d.document_id for d in found] == [1, 2, 3]
        assert found[0].content == '<img src="http://x/a.png">'

    def test_document_without_reference_is_excluded(
        self, corpus: Corpus, original_asset: Asset
    ):
        _add(corpus, 1, "<p>Nothing to see here.</p>")
        _add(corpus, 2, '<img class="wp-image-42">')
        found = DocumentScanner(corpus.documents).scan(original_asset)
        assert [d.document_id for d in found] == [2]

    def test_false_positive_is_returned(self, corpus: Corpus, original_asset: Asset):
        # "wp-image-420" contains the class term; the rewrite engine sorts it out
        _add(corpus, 1, '<img class="wp-image-420">')
        found = DocumentScanner(corpus.documents).scan(original_asset)
        assert [d.document_id for d in found] == [1]

    def test_srcset_only_reference_is_a_known_gap(
        self, corpus: Corpus, original_asset: Asset
    ):
        _add(corpus, 1, '<img srcset="http://cdn.example/a.png 2x">')
        _add(corpus, 2, '<img src="http://x/a-150x150.png">')
        assert DocumentScanner(corpus.documents).scan(original_asset) == []
