"""Reference Pattern Catalog — every textual shape an asset reference takes.

Two catalogs are built from an (original, replacement) asset pair:

- ``build_catalog`` — the seven document-body shapes, in application order.
  Order matters: the direct URL runs before the size-variant URLs, and the
  responsive-attribute strip runs last so it only sees what the earlier
  patterns could not rewrite.
- ``build_value_catalog`` — the shapes found in side-table values (bare id,
  URL, quoted id token, serialized scalar).

Both are applied with the single ``substitute`` primitive.  Matching is
plain text scanning; no pattern assumes well-formed markup around it, and
numeric ids are bounded on both sides so ``42`` never matches inside
``420`` or ``142``.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from mediaswap.models.assets import Asset

# Pattern names, in document application order.
CANONICAL_URL = "canonical_url"
CLASS_TOKEN = "class_token"
DATA_ID = "data_id"
SHORTCODE = "shortcode"
STRUCTURED_ID = "structured_id"
SIZE_VARIANT_URL = "size_variant_url"
RESPONSIVE_SRCSET = "responsive_srcset"

DOCUMENT_PATTERN_ORDER: list[str] = [
    CANONICAL_URL,
    CLASS_TOKEN,
    DATA_ID,
    SHORTCODE,
    STRUCTURED_ID,
    SIZE_VARIANT_URL,
    RESPONSIVE_SRCSET,
]

# Side-table value pattern names.
BARE_ID = "bare_id"
QUOTED_ID = "quoted_id"
SERIALIZED_SCALAR = "serialized_scalar"

STRUCTURED_ID_KEYS: tuple[str, ...] = ("id", "mediaId", "attachmentId")

# Not preceded by an identifier character; used to anchor attribute names
# and tokens so "data-id" never matches inside "my-data-id".
_NAME_START = r"(?<![\w-])"
_NAME_END = r"(?![\w-])"
# End of an unquoted numeric value: "42" must not match "42.5" either.
_VALUE_END = r"(?![\w.-])"

_BRACKET_SPAN = re.compile(r"\[[^\[\]]*\]")
_SERIALIZED_STRING = re.compile(rb'(?:^|(?<=[;{}]))s:(\d+):"')


class ReferencePattern(BaseModel):
    """One cataloged reference shape.

    ``matcher`` finds candidate spans; ``rewriter`` maps a match to its
    replacement text.  A rewriter may return the matched text unchanged,
    which ``substitute`` does not count as a hit.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    matcher: re.Pattern
    rewriter: Callable[[re.Match], str]


# ---------------------------------------------------------------------------
# Substitution primitive
# ---------------------------------------------------------------------------


def substitute(pattern: ReferencePattern, text: str) -> tuple[str, int]:
    """Apply one pattern to *text*.

    Returns ``(new_text, hits)`` where *hits* counts the matches whose
    rewrite actually differed from the matched span.
    """
    hits = 0

    def _apply(match: re.Match) -> str:
        nonlocal hits
        rewritten = pattern.rewriter(match)
        if rewritten != match.group(0):
            hits += 1
        return rewritten

    return pattern.matcher.sub(_apply, text), hits


def substitute_all(
    patterns: list[ReferencePattern], text: str
) -> tuple[str, dict[str, int]]:
    """Apply *patterns* in order, returning the text and per-pattern hits."""
    counts: dict[str, int] = {}
    for pattern in patterns:
        text, hits = substitute(pattern, text)
        if hits:
            counts[pattern.name] = counts.get(pattern.name, 0) + hits
    return text, counts


def literal_matcher(old: str, new: str) -> str:
    """Regex source for the literal *old*, excluding spans already inside *new*.

    When the replacement text embeds the original (``a.png`` ->
    ``a.png?v=2``) a plain literal match would fire again on the rewritten
    text; fixed-width lookarounds on the surrounding parts of *new* stop it.
    """
    source = re.escape(old)
    if old and old in new:
        at = new.index(old)
        prefix, suffix = new[:at], new[at + len(old):]
        if prefix:
            source = f"(?<!{re.escape(prefix)}){source}"
        if suffix:
            source = f"{source}(?!{re.escape(suffix)})"
    return source


# ---------------------------------------------------------------------------
# Document pattern constructors
# ---------------------------------------------------------------------------


def url_pattern(old_url: str, new_url: str, name: str = CANONICAL_URL) -> ReferencePattern:
    """Pattern 1: exact occurrence of the full canonical URL."""
    return ReferencePattern(
        name=name,
        matcher=re.compile(literal_matcher(old_url, new_url)),
        rewriter=lambda m: new_url,
    )


def class_token_pattern(old_id: int, new_id: int, prefix: str) -> ReferencePattern:
    """Pattern 2: the marker class ``<prefix><id>``, e.g. ``wp-image-42``."""
    return ReferencePattern(
        name=CLASS_TOKEN,
        matcher=re.compile(f"{_NAME_START}{re.escape(prefix)}{old_id}{_NAME_END}"),
        rewriter=lambda m: f"{prefix}{new_id}",
    )


def data_id_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """Pattern 3: ``data-id`` with double-quoted, single-quoted or bare value.

    The attribute's spacing and quote style are preserved.
    """
    matcher = re.compile(
        rf"{_NAME_START}(data-id\s*=\s*)"
        rf"(?:([\"']){old_id}\2|{old_id}{_VALUE_END})"
    )

    def _rewrite(m: re.Match) -> str:
        quote = m.group(2) or ""
        return f"{m.group(1)}{quote}{new_id}{quote}"

    return ReferencePattern(name=DATA_ID, matcher=matcher, rewriter=_rewrite)


def shortcode_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """Pattern 4: bracketed shortcodes carrying the id.

    Inside one ``[...]`` span this rewrites an ``id=`` parameter, list
    members of an ``ids=`` parameter and ``attachment_<id>`` tokens.  Every
    other parameter in the bracket is left byte-identical.
    """
    id_param = re.compile(
        rf"{_NAME_START}(id\s*=\s*)(?:([\"']){old_id}\2|{old_id}{_VALUE_END})"
    )
    ids_param = re.compile(rf"{_NAME_START}(ids\s*=\s*)([\"']?)([\d,\s]*)\2")
    attachment_token = re.compile(rf"{_NAME_START}attachment_{old_id}{_NAME_END}")
    list_member = re.compile(rf"(?<!\d){old_id}(?!\d)")

    def _id(m: re.Match) -> str:
        quote = m.group(2) or ""
        return f"{m.group(1)}{quote}{new_id}{quote}"

    def _ids(m: re.Match) -> str:
        members = list_member.sub(str(new_id), m.group(3))
        return f"{m.group(1)}{m.group(2)}{members}{m.group(2)}"

    def _rewrite(m: re.Match) -> str:
        span = m.group(0)
        span = id_param.sub(_id, span)
        span = ids_param.sub(_ids, span)
        return attachment_token.sub(f"attachment_{new_id}", span)

    return ReferencePattern(name=SHORTCODE, matcher=_BRACKET_SPAN, rewriter=_rewrite)


def structured_id_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """Pattern 5: JSON-like ``"id":42`` / ``"mediaId":"42"`` block attributes.

    The key, separator spacing and numeric-vs-quoted form are preserved.
    """
    keys = "|".join(STRUCTURED_ID_KEYS)
    matcher = re.compile(
        rf'"({keys})"(\s*:\s*)(?:(")({old_id})"|{old_id}(?![\w.]))'
    )

    def _rewrite(m: re.Match) -> str:
        quote = m.group(3) or ""
        return f'"{m.group(1)}"{m.group(2)}{quote}{new_id}{quote}'

    return ReferencePattern(name=STRUCTURED_ID, matcher=matcher, rewriter=_rewrite)


def shared_variant_urls(original: Asset, replacement: Asset) -> dict[str, str]:
    """Map original variant URL -> replacement variant URL for shared sizes.

    Sizes present only on the original are omitted; see
    ``dangling_variant_urls``.  Variants that coincide with the canonical
    file are skipped since pattern 1 already covers them.
    """
    mapping: dict[str, str] = {}
    old_urls = original.variant_urls()
    new_urls = replacement.variant_urls()
    for size, old_url in old_urls.items():
        if size not in new_urls or old_url == original.canonical_url:
            continue
        if old_url != new_urls[size]:
            mapping.setdefault(old_url, new_urls[size])
    return mapping


def dangling_variant_urls(original: Asset, replacement: Asset) -> dict[str, str]:
    """Return ``{size name: url}`` for sizes only the original has."""
    return {
        size: url
        for size, url in original.variant_urls().items()
        if size not in replacement.variants
    }


def size_variant_pattern(mapping: dict[str, str]) -> ReferencePattern | None:
    """Pattern 6: per-size thumbnail/resized URLs, one alternation."""
    if not mapping:
        return None
    # Longest first so one URL that prefixes another cannot shadow it.
    ordered = sorted(mapping, key=len, reverse=True)
    matcher = re.compile("|".join(literal_matcher(u, mapping[u]) for u in ordered))
    return ReferencePattern(
        name=SIZE_VARIANT_URL,
        matcher=matcher,
        rewriter=lambda m: mapping[m.group(0)],
    )


def _url_basename(url: str) -> str:
    return posixpath.basename(re.split(r"[?#]", url, maxsplit=1)[0])


def srcset_pattern(original: Asset, replacement: Asset) -> ReferencePattern:
    """Pattern 7: strip ``srcset`` attributes still naming the original's files.

    This is a lossy fallback: the attribute (and the whitespace before it)
    is removed so the consumer regenerates it from canonical data.
    Candidates whose URL belongs to the replacement are not stale even when
    the basenames coincide.
    """
    stale_files = {original.filename}
    stale_files.update(v.file for v in original.variants.values())
    fresh_urls = {replacement.canonical_url, *replacement.variant_urls().values()}
    matcher = re.compile(r"\s*(?<![\w-])srcset\s*=\s*([\"'])([\s\S]*?)\1")

    def _rewrite(m: re.Match) -> str:
        for candidate in m.group(2).split(","):
            parts = candidate.split()
            if not parts or parts[0] in fresh_urls:
                continue
            if _url_basename(parts[0]) in stale_files:
                return ""
        return m.group(0)

    return ReferencePattern(name=RESPONSIVE_SRCSET, matcher=matcher, rewriter=_rewrite)


def build_catalog(
    original: Asset, replacement: Asset, *, class_prefix: str = "wp-image-"
) -> list[ReferencePattern]:
    """Build the ordered document-body catalog for one replacement."""
    old_id, new_id = original.asset_id, replacement.asset_id
    catalog: list[ReferencePattern] = []
    if original.canonical_url:
        catalog.append(url_pattern(original.canonical_url, replacement.canonical_url))
    catalog += [
        class_token_pattern(old_id, new_id, class_prefix),
        data_id_pattern(old_id, new_id),
        shortcode_pattern(old_id, new_id),
        structured_id_pattern(old_id, new_id),
    ]
    variants = size_variant_pattern(shared_variant_urls(original, replacement))
    if variants is not None:
        catalog.append(variants)
    catalog.append(srcset_pattern(original, replacement))
    return catalog


# ---------------------------------------------------------------------------
# Side-table value catalog
# ---------------------------------------------------------------------------


def bare_id_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """A value that is exactly the identifier."""
    return ReferencePattern(
        name=BARE_ID,
        matcher=re.compile(rf"\A{old_id}\Z"),
        rewriter=lambda m: str(new_id),
    )


def quoted_id_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """The identifier as a double-quoted token, ``"42"``."""
    return ReferencePattern(
        name=QUOTED_ID,
        matcher=re.compile(f'"{old_id}"'),
        rewriter=lambda m: f'"{new_id}"',
    )


def serialized_scalar_pattern(old_id: int, new_id: int) -> ReferencePattern:
    """Legacy serialized scalars, ``i:42;`` and ``:42;``."""
    return ReferencePattern(
        name=SERIALIZED_SCALAR,
        matcher=re.compile(rf"(?<=:){old_id}(?=;)"),
        rewriter=lambda m: str(new_id),
    )


def build_value_catalog(original: Asset, replacement: Asset) -> list[ReferencePattern]:
    """Build the ordered side-table value catalog for one replacement."""
    old_id, new_id = original.asset_id, replacement.asset_id
    catalog = [bare_id_pattern(old_id, new_id)]
    if original.canonical_url:
        catalog.append(url_pattern(original.canonical_url, replacement.canonical_url))
    catalog += [
        quoted_id_pattern(old_id, new_id),
        serialized_scalar_pattern(old_id, new_id),
    ]
    return catalog


def rewrite_serialized_strings(
    value: str, transform: Callable[[str], tuple[str, int]]
) -> tuple[str, int]:
    """Rewrite the payload of every ``s:<n>:"...";`` string in *value*.

    The declared byte length drives extraction, so payloads containing
    quotes or semicolons are handled; a changed payload gets its length
    prefix recomputed.  Spans whose declared length does not fit are left
    untouched.
    """
    raw = value.encode("utf-8")
    out: list[bytes] = []
    pos = 0
    hits = 0
    while True:
        m = _SERIALIZED_STRING.search(raw, pos)
        if m is None:
            break
        start = m.end()
        end = start + int(m.group(1))
        if raw[end:end + 2] != b'";':
            out.append(raw[pos:start])
            pos = start
            continue
        try:
            payload = raw[start:end].decode("utf-8")
        except UnicodeDecodeError:
            out.append(raw[pos:start])
            pos = start
            continue
        new_payload, count = transform(payload)
        out.append(raw[pos:m.start()])
        if count:
            hits += count
            encoded = new_payload.encode("utf-8")
            out.append(b"s:%d:\"" % len(encoded) + encoded + b'";')
        else:
            out.append(raw[m.start():end + 2])
        pos = end + 2
    if not hits:
        return value, 0
    out.append(raw[pos:])
    return b"".join(out).decode("utf-8"), hits
