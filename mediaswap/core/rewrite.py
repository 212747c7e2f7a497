"""Rewrite Engine — apply the pattern catalog to one document body.

Pure: the engine never mutates its inputs and holds no state besides the
compiled catalog, so one engine may be shared across documents and threads.
Idempotent: rewriting the output again with the same asset pair reports
``changed=False``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from mediaswap.core.patterns import (
    build_catalog,
    dangling_variant_urls,
    substitute_all,
)
from mediaswap.models.assets import Asset


class RewriteResult(BaseModel):
    """The outcome of rewriting one body.

    ``matches`` counts effective rewrites per pattern name;
    ``dangling_variants`` names original-only sizes whose URL is still
    present in ``content``.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    changed: bool
    matches: dict[str, int] = {}
    dangling_variants: list[str] = []


class RewriteEngine:
    """Compiled catalog for one (original, replacement) pair.

    Parameters
    ----------
    original:
        The asset whose references are being redirected.
    replacement:
        The asset references should point at afterwards.
    class_prefix:
        Prefix of the marker class that embeds an asset id.
    """

    def __init__(
        self, original: Asset, replacement: Asset, *, class_prefix: str = "wp-image-"
    ) -> None:
        self.original = original
        self.replacement = replacement
        self.catalog = build_catalog(original, replacement, class_prefix=class_prefix)
        self._dangling = dangling_variant_urls(original, replacement)

    def rewrite(self, content: str) -> RewriteResult:
        """Rewrite every cataloged reference in *content*."""
        new_content, counts = substitute_all(self.catalog, content)
        dangling = sorted(
            size for size, url in self._dangling.items() if url in new_content
        )
        return RewriteResult(
            content=new_content,
            changed=bool(counts),
            matches=counts,
            dangling_variants=dangling,
        )


def rewrite_content(
    content: str,
    original: Asset,
    replacement: Asset,
    *,
    class_prefix: str = "wp-image-",
) -> RewriteResult:
    """One-shot convenience: ``(body, original, replacement) -> result``."""
    engine = RewriteEngine(original, replacement, class_prefix=class_prefix)
    return engine.rewrite(content)
