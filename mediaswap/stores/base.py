"""Collaborator contracts consumed by the replacement core.

Defines the ``AssetStore``, ``DocumentStore`` and ``SideTableStore``
Protocols.  Any object with the listed methods satisfies them; the SQLite
implementations in ``mediaswap.stores.sqlite`` are the defaults.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mediaswap.models.assets import Asset, MetadataBag
from mediaswap.models.documents import Document, SideTableEntry, SideTableKind


class NotFoundError(LookupError):
    """Raised when an asset or document identifier is unknown."""


class StoreWriteError(RuntimeError):
    """Raised when the underlying store rejects a write."""


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class AssetStore(Protocol):
    """Resolves image assets and owns their metadata bags."""

    def resolve(self, asset_id: int) -> Asset:
        """Return the asset, raising ``NotFoundError`` if unknown."""
        ...

    def update_metadata(self, asset_id: int, bag: MetadataBag) -> None:
        """Replace the asset's metadata bag as one whole-value write."""
        ...

    def delete(self, asset_id: int) -> None:
        """Remove the asset, raising ``NotFoundError`` if unknown."""
        ...

    def find_by_url(self, url: str) -> int | None:
        """Return the id of the asset whose canonical URL is *url*."""
        ...

    def find_by_file_suffix(self, filename: str) -> int | None:
        """Return the id of an asset whose attached file ends with *filename*."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """The document corpus."""

    def find_candidates(self, filter_terms: set[str]) -> list[Document]:
        """Return documents whose content contains any of *filter_terms*."""
        ...

    def write_content(self, document_id: int, content: str) -> None:
        """Replace a document's whole body.

        Raises ``NotFoundError`` if the document no longer exists and
        ``StoreWriteError`` if the store rejects the write.
        """
        ...


@runtime_checkable
class SideTableStore(Protocol):
    """An auxiliary key/value store (document metadata, options, widgets)."""

    kind: SideTableKind

    def find_entries_containing(self, token: str) -> list[SideTableEntry]:
        ...

    def find_entries_equal(
        self, value: str, label: str | None = None
    ) -> list[SideTableEntry]:
        """Return entries whose value is exactly *value*, optionally by label."""
        ...

    def write_entry(self, key: str, value: str) -> None:
        ...
