"""Document Scanner — narrow pre-filter over the document store.

The filter terms cover only the canonical URL, the marker class and the
``"id":<n>`` block attribute.  False positives are harmless because the
full catalog still runs on every candidate; documents referencing the
asset only through size-variant URLs, ``data-id``, shortcodes or
``srcset`` are not returned.
"""

from __future__ import annotations

import logging

from mediaswap.models.assets import Asset
from mediaswap.models.documents import Document
from mediaswap.stores.base import DocumentStore

logger = logging.getLogger(__name__)


class DocumentScanner:
    """Finds documents that plausibly reference an asset."""

    def __init__(self, store: DocumentStore, *, class_prefix: str = "wp-image-") -> None:
        self._store = store
        self._class_prefix = class_prefix

    def filter_terms(self, asset: Asset) -> set[str]:
        terms = {f"{self._class_prefix}{asset.asset_id}", f'"id":{asset.asset_id}'}
        if asset.canonical_url:
            terms.add(asset.canonical_url)
        return terms

    def scan(self, asset: Asset) -> list[Document]:
        """Return candidate documents with their current content."""
        candidates = self._store.find_candidates(self.filter_terms(asset))
        logger.info(
            "Found %d candidate documents referencing asset %d",
            len(candidates),
            asset.asset_id,
        )
        return candidates
