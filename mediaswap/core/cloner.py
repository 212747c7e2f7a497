"""Metadata Cloner — make the replacement indistinguishable in listings.

The clone is a snapshot: title, description and caption are overwritten,
alt text is copied when the original has one, and every custom field whose
key does not start with the reserved prefix is appended.  Later edits to
either asset do not propagate.
"""

from __future__ import annotations

import logging

from mediaswap.models.assets import MetadataBag
from mediaswap.stores.base import AssetStore

logger = logging.getLogger(__name__)


def merge_metadata(
    source: MetadataBag, target: MetadataBag, *, reserved_prefix: str = "_wp_"
) -> MetadataBag:
    """Return *target* with *source*'s descriptive metadata copied in.

    Custom fields are additive so multi-valued fields survive: a key already
    present on *target* gains *source*'s values after its own.
    """
    fields = {key: list(values) for key, values in target.fields.items()}
    for key, values in source.fields.items():
        if key.startswith(reserved_prefix):
            continue
        fields.setdefault(key, []).extend(values)
    return MetadataBag(
        title=source.title,
        description=source.description,
        caption=source.caption,
        alt_text=source.alt_text or target.alt_text,
        fields=fields,
    )


class MetadataCloner:
    """Copies metadata between assets held in one asset store."""

    def __init__(self, store: AssetStore, *, reserved_prefix: str = "_wp_") -> None:
        self._store = store
        self._reserved_prefix = reserved_prefix

    def clone(self, original_id: int, replacement_id: int) -> MetadataBag:
        """Copy *original_id*'s metadata onto *replacement_id*.

        Raises ``NotFoundError`` if either asset is missing; nothing is
        written in that case.
        """
        source = self._store.resolve(original_id).metadata
        target = self._store.resolve(replacement_id).metadata
        merged = merge_metadata(source, target, reserved_prefix=self._reserved_prefix)
        self._store.update_metadata(replacement_id, merged)
        logger.info("Copied metadata from asset %d to %d", original_id, replacement_id)
        return merged
