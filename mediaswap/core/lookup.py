"""Resolve an asset id from any URL that points at one of its files."""

from __future__ import annotations

import logging
import posixpath
import re

from mediaswap.stores.base import AssetStore

logger = logging.getLogger(__name__)

# "-150x150" right before the extension, as in "photo-150x150.png".
_SIZE_SUFFIX = re.compile(r"-\d+x\d+(?=\.[a-z]{3,4}$)", re.IGNORECASE)


def strip_size_suffix(url: str) -> str:
    return _SIZE_SUFFIX.sub("", url)


def resolve_asset_id_from_url(store: AssetStore, url: str) -> int | None:
    """Find the asset behind *url*, or ``None``.

    Tries, in order: the exact canonical URL (query string dropped), the
    URL with a ``-<W>x<H>`` size suffix removed, and finally the file's
    basename against each asset's attached file.
    """
    url = url.split("?", 1)[0]
    if not url:
        return None

    asset_id = store.find_by_url(url)
    if asset_id is not None:
        return asset_id

    unsized = strip_size_suffix(url)
    if unsized != url:
        asset_id = store.find_by_url(unsized)
        if asset_id is not None:
            return asset_id

    asset_id = store.find_by_file_suffix(posixpath.basename(url))
    if asset_id is None:
        logger.debug("No asset found for URL %s", url)
    return asset_id
