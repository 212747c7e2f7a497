"""Side-Table Propagator — redirect identifiers stored outside document bodies.

Covers per-document metadata (including featured-image references), widget
configurations and global options.  Values are rewritten with the value
catalog through the same ``substitute`` primitive the Rewrite Engine uses;
PHP-serialized strings are rewritten payload-first so their byte-length
prefixes stay correct.  Only entries whose value actually changed are
written back.
"""

from __future__ import annotations

import logging

from mediaswap.core.patterns import (
    ReferencePattern,
    build_value_catalog,
    rewrite_serialized_strings,
    substitute_all,
)
from mediaswap.models.assets import Asset
from mediaswap.models.documents import SideTableEntry, SideTableKind
from mediaswap.models.operations import StepReport, SubjectOutcome
from mediaswap.stores.base import SideTableStore, StoreWriteError

logger = logging.getLogger(__name__)


def rewrite_value(value: str, catalog: list[ReferencePattern]) -> tuple[str, int]:
    """Rewrite one side-table value; returns ``(new_value, hits)``."""

    def _payload(payload: str) -> tuple[str, int]:
        text, counts = substitute_all(catalog, payload)
        return text, sum(counts.values())

    value, hits = rewrite_serialized_strings(value, _payload)
    value, counts = substitute_all(catalog, value)
    return value, hits + sum(counts.values())


def search_tokens(original: Asset) -> list[str]:
    """Containment tokens used to pull candidate entries from a side table."""
    tokens = [f'"{original.asset_id}"', f":{original.asset_id};"]
    if original.canonical_url:
        tokens.append(original.canonical_url)
    return tokens


class SideTablePropagator:
    """Applies the value catalog to every configured side table.

    Parameters
    ----------
    tables:
        Side-table stores, visited in order.
    featured_meta_key:
        Document metadata key holding a document's featured asset id.
    """

    def __init__(
        self,
        tables: list[SideTableStore],
        *,
        featured_meta_key: str = "_thumbnail_id",
    ) -> None:
        self._tables = list(tables)
        self._featured_meta_key = featured_meta_key

    # ------------------------------------------------------------------
    # Featured references
    # ------------------------------------------------------------------

    def rewrite_featured(self, original: Asset, replacement: Asset) -> StepReport:
        """Point featured-asset metadata at the replacement."""
        old, new = str(original.asset_id), str(replacement.asset_id)
        report = _ReportBuilder()
        for table in self._tables:
            if table.kind != SideTableKind.DOCUMENT_META:
                continue
            for entry in table.find_entries_equal(old, label=self._featured_meta_key):
                report.write(table, entry, new)
        logger.info(
            "Updated %d featured references from asset %s to %s",
            report.changed,
            old,
            new,
        )
        return report.build()

    # ------------------------------------------------------------------
    # General propagation
    # ------------------------------------------------------------------

    def propagate(self, original: Asset, replacement: Asset) -> StepReport:
        """Rewrite every side-table entry embedding the original."""
        catalog = build_value_catalog(original, replacement)
        report = _ReportBuilder()
        for table in self._tables:
            for entry in self._candidates(table, original):
                new_value, hits = rewrite_value(entry.value, catalog)
                if hits and new_value != entry.value:
                    report.write(table, entry, new_value)
        return report.build()

    @staticmethod
    def _candidates(table: SideTableStore, original: Asset) -> list[SideTableEntry]:
        seen: dict[str, SideTableEntry] = {}
        found = table.find_entries_equal(str(original.asset_id))
        for token in search_tokens(original):
            found += table.find_entries_containing(token)
        for entry in found:
            seen.setdefault(entry.key, entry)
        return list(seen.values())


class _ReportBuilder:
    """Accumulates write outcomes into a ``StepReport``."""

    def __init__(self) -> None:
        self.changed = 0
        self.failed = 0
        self.subjects: list[SubjectOutcome] = []

    def write(self, table: SideTableStore, entry: SideTableEntry, value: str) -> None:
        subject = f"{table.kind.value}:{entry.key}"
        try:
            table.write_entry(entry.key, value)
        except StoreWriteError as exc:
            logger.error("Failed to update %s (%s): %s", subject, entry.label, exc)
            self.failed += 1
            self.subjects.append(
                SubjectOutcome(subject=subject, event="write_failed", detail=str(exc))
            )
            return
        logger.info("Updated %s (%s)", subject, entry.label)
        self.changed += 1
        self.subjects.append(
            SubjectOutcome(subject=subject, event="rewritten", detail=entry.label)
        )

    def build(self) -> StepReport:
        return StepReport(
            changed=self.changed, failed=self.failed, subjects=list(self.subjects)
        )
