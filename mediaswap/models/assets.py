"""Image asset models — an asset is immutable apart from its metadata bag."""

from __future__ import annotations

import posixpath

from pydantic import BaseModel, ConfigDict, Field


class SizeVariant(BaseModel):
    """A named, pre-rendered size of an asset (thumbnail, medium, ...).

    Variant files live next to the canonical file, so the variant URL is
    derived from the canonical URL's directory plus ``file``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    file: str  # basename, e.g. "photo-150x150.png"
    width: int = 0
    height: int = 0
    mime_type: str = ""


class MetadataBag(BaseModel):
    """Descriptive metadata shown in catalogs and listings.

    ``fields`` maps a custom field key to one or more values; keys are
    unordered, values keep insertion order.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    caption: str = ""
    alt_text: str = ""
    fields: dict[str, list[str]] = Field(default_factory=dict)


class Asset(BaseModel):
    """An image asset as resolved from the asset store."""

    model_config = ConfigDict(frozen=True)

    asset_id: int
    canonical_url: str
    attached_file: str = ""  # storage-relative path, e.g. "2026/10/photo.png"
    mime_type: str = "image/png"
    byte_size: int = 0
    variants: dict[str, SizeVariant] = Field(default_factory=dict)
    metadata: MetadataBag = MetadataBag()

    @property
    def filename(self) -> str:
        """Basename of the canonical URL."""
        return posixpath.basename(self.canonical_url)

    @property
    def base_url(self) -> str:
        return posixpath.dirname(self.canonical_url)

    def variant_url(self, size: str) -> str:
        """Return the URL of the named size variant."""
        return f"{self.base_url}/{self.variants[size].file}"

    def variant_urls(self) -> dict[str, str]:
        """Return ``{size name: url}`` for every variant."""
        return {name: self.variant_url(name) for name in self.variants}
