"""Replacement Orchestrator — the entry point for promoting an edited image.

Walks START -> SCAN_AND_REWRITE_DOCS -> REWRITE_FEATURED_REFS ->
PROPAGATE_SIDE_TABLES -> CLONE_METADATA -> DONE.  Every step is attempted
even if an earlier one failed; nothing is rolled back.  The original asset
is never deleted here: it becomes orphaned, and removing an asset is the
separate ``discard`` operation.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from mediaswap.config import SwapSettings
from mediaswap.core.cloner import MetadataCloner
from mediaswap.core.journal import ReplacementJournal
from mediaswap.core.propagator import SideTablePropagator
from mediaswap.core.rewrite import RewriteEngine
from mediaswap.core.scanner import DocumentScanner
from mediaswap.core.step_machine import StepMachine
from mediaswap.core.usage_stats import UsageCounter
from mediaswap.models.assets import Asset
from mediaswap.models.operations import (
    WORK_STEPS,
    JournalEntry,
    ReplacementResult,
    ReplacementStep,
    StepOutcome,
    StepReport,
    StepState,
    SubjectOutcome,
)
from mediaswap.stores.base import (
    AssetStore,
    DocumentStore,
    NotFoundError,
    SideTableStore,
    StoreWriteError,
)
from mediaswap.stores.sqlite import Corpus

logger = logging.getLogger(__name__)


class ReplacementError(RuntimeError):
    """Raised when no step of a replacement operation succeeded."""

    def __init__(self, message: str, result: ReplacementResult) -> None:
        super().__init__(message)
        self.result = result
        self.failed_steps = result.failed_steps


class PartialPropagationError(ReplacementError):
    """Raised when some steps failed after others succeeded.

    Already-applied rewrites stay in place; ``result`` describes them.
    """


class ReplacementOrchestrator:
    """Sequences scanner, rewrite engine, propagator and cloner.

    Parameters
    ----------
    assets, documents, side_tables:
        The corpus collaborators.
    journal:
        Receives every step transition and per-subject outcome.
    settings:
        Markup and metadata conventions. Uses defaults if not provided.
    usage:
        Counter that records one outcome per ``replace`` call.
    """

    def __init__(
        self,
        assets: AssetStore,
        documents: DocumentStore,
        side_tables: list[SideTableStore],
        journal: ReplacementJournal,
        *,
        settings: SwapSettings | None = None,
        usage: UsageCounter | None = None,
    ) -> None:
        self.settings = settings or SwapSettings()
        self.assets = assets
        self.documents = documents
        self.journal = journal
        self.usage = usage or UsageCounter()
        self.step_machine = StepMachine(journal)
        self.scanner = DocumentScanner(documents, class_prefix=self.settings.class_prefix)
        self.propagator = SideTablePropagator(
            side_tables, featured_meta_key=self.settings.featured_meta_key
        )
        self.cloner = MetadataCloner(
            assets, reserved_prefix=self.settings.reserved_meta_prefix
        )

    @classmethod
    def open(
        cls,
        corpus_path: Path,
        journal_path: Path,
        *,
        settings: SwapSettings | None = None,
        usage: UsageCounter | None = None,
    ) -> ReplacementOrchestrator:
        """Wire an orchestrator over the SQLite corpus at *corpus_path*.

        Without an explicit *usage* counter, counts resume from and are
        saved back to the corpus's usage table.
        """
        settings = settings or SwapSettings()
        corpus = Corpus(corpus_path, widget_option_prefix=settings.widget_option_prefix)
        if usage is None:
            usage = UsageCounter(corpus.usage.load(), sink=corpus.usage.save)
        return cls(
            corpus.assets,
            corpus.documents,
            corpus.side_tables,
            ReplacementJournal(journal_path),
            settings=settings,
            usage=usage,
        )

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def replace(self, original_id: int, replacement_id: int) -> ReplacementResult:
        """Redirect every reference from *original_id* to *replacement_id*.

        Raises ``ValueError`` for identical ids and ``NotFoundError`` if
        either asset is unknown (nothing is written then).  Raises
        ``PartialPropagationError`` / ``ReplacementError`` when steps fail;
        the exception carries the aggregate result.
        """
        if original_id == replacement_id:
            raise ValueError(f"Original and replacement are the same asset: {original_id}")

        try:
            original = self.assets.resolve(original_id)
            replacement = self.assets.resolve(replacement_id)
        except LookupError:
            self.usage.record(success=False)
            raise

        operation_id = self._new_operation_id()
        logger.info(
            "Replacing references: original %d with %d (operation %s)",
            original_id,
            replacement_id,
            operation_id,
        )
        self.step_machine.initialize(operation_id)
        self._mark(operation_id, ReplacementStep.START, "started",
                   f"{original_id}->{replacement_id}")

        handlers: dict[ReplacementStep, Callable[[Asset, Asset], StepReport]] = {
            ReplacementStep.SCAN_AND_REWRITE_DOCS: self._rewrite_documents,
            ReplacementStep.REWRITE_FEATURED_REFS: self.propagator.rewrite_featured,
            ReplacementStep.PROPAGATE_SIDE_TABLES: self.propagator.propagate,
            ReplacementStep.CLONE_METADATA: self._clone_metadata,
        }
        outcomes: list[StepOutcome] = []
        reports: dict[ReplacementStep, StepReport] = {}
        for step in WORK_STEPS:
            outcome, report = self._run_step(
                operation_id, step, handlers[step], original, replacement
            )
            outcomes.append(outcome)
            if report is not None:
                reports[step] = report

        docs = reports.get(ReplacementStep.SCAN_AND_REWRITE_DOCS, StepReport())
        side_changed = sum(
            reports[s].changed
            for s in (ReplacementStep.REWRITE_FEATURED_REFS, ReplacementStep.PROPAGATE_SIDE_TABLES)
            if s in reports
        )
        result = ReplacementResult(
            operation_id=operation_id,
            original_id=original_id,
            replacement_id=replacement_id,
            replacement_url=replacement.canonical_url,
            documents_changed=docs.changed,
            documents_failed=docs.failed,
            side_entries_changed=side_changed,
            dangling_variants=docs.dangling_variants,
            steps=outcomes,
        )

        self.usage.record(success=result.succeeded)
        if result.succeeded:
            self._mark(operation_id, ReplacementStep.DONE, "completed",
                       f"documents_changed={result.documents_changed}")
            logger.info(
                "Successfully updated all references from asset %d to %d",
                original_id,
                replacement_id,
            )
            return result

        failed = ", ".join(s.value for s in result.failed_steps)
        passed = [o for o in outcomes if o.state == StepState.PASSED]
        self._mark(operation_id, ReplacementStep.DONE,
                   "partial" if passed else "failed", failed)
        if passed:
            raise PartialPropagationError(
                f"Replacement {operation_id} partially applied; failed steps: {failed}",
                result,
            )
        raise ReplacementError(f"Replacement {operation_id} failed: {failed}", result)

    def discard(self, asset_id: int) -> None:
        """Delete a rejected generated asset.

        Raises ``NotFoundError`` if the asset is unknown.
        """
        logger.info("Discarding asset %d", asset_id)
        self.assets.delete(asset_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run_step(
        self,
        operation_id: str,
        step: ReplacementStep,
        handler: Callable[[Asset, Asset], StepReport],
        original: Asset,
        replacement: Asset,
    ) -> tuple[StepOutcome, StepReport | None]:
        self.step_machine.transition(operation_id, step, StepState.RUNNING)
        try:
            report = handler(original, replacement)
        except Exception as exc:  # noqa: BLE001
            logger.error("Step %s failed in operation %s: %s", step.value, operation_id, exc)
            self.step_machine.transition(
                operation_id, step, StepState.FAILED, detail=str(exc)
            )
            return StepOutcome(step=step, state=StepState.FAILED, error=str(exc)), None

        for subject in report.subjects:
            self.journal.append(
                JournalEntry(
                    operation_id=operation_id,
                    step=step.value,
                    event=subject.event,
                    subject=subject.subject,
                    detail=subject.detail,
                )
            )
        self.step_machine.transition(
            operation_id,
            step,
            StepState.PASSED,
            detail=f"changed={report.changed} failed={report.failed}",
        )
        outcome = StepOutcome(
            step=step, state=StepState.PASSED, changed=report.changed, failed=report.failed
        )
        return outcome, report

    def _rewrite_documents(self, original: Asset, replacement: Asset) -> StepReport:
        """Rewrite every candidate document; per-document failures are skipped."""
        engine = RewriteEngine(
            original, replacement, class_prefix=self.settings.class_prefix
        )
        changed = failed = 0
        dangling: set[str] = set()
        subjects: list[SubjectOutcome] = []

        for document in self.scanner.scan(original):
            subject = f"document:{document.document_id}"
            result = engine.rewrite(document.content)
            if result.dangling_variants:
                logger.warning(
                    "Document %d still references original-only sizes: %s",
                    document.document_id,
                    ", ".join(result.dangling_variants),
                )
                dangling.update(result.dangling_variants)
            if not result.changed:
                continue
            try:
                self.documents.write_content(document.document_id, result.content)
            except (StoreWriteError, NotFoundError) as exc:
                event = "not_found" if isinstance(exc, NotFoundError) else "write_failed"
                logger.error("Failed to update document %d: %s", document.document_id, exc)
                failed += 1
                subjects.append(SubjectOutcome(subject=subject, event=event, detail=str(exc)))
                continue
            logger.info(
                "Updated document %d (%s)",
                document.document_id,
                ", ".join(f"{k}={v}" for k, v in result.matches.items()),
            )
            changed += 1
            subjects.append(
                SubjectOutcome(
                    subject=subject,
                    event="rewritten",
                    detail=",".join(sorted(result.matches)),
                )
            )

        return StepReport(
            changed=changed,
            failed=failed,
            dangling_variants=sorted(dangling),
            subjects=subjects,
        )

    def _clone_metadata(self, original: Asset, replacement: Asset) -> StepReport:
        self.cloner.clone(original.asset_id, replacement.asset_id)
        return StepReport(changed=1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _mark(self, operation_id: str, step: ReplacementStep, event: str, detail: str) -> None:
        self.journal.append(
            JournalEntry(operation_id=operation_id, step=step.value, event=event, detail=detail)
        )

    @staticmethod
    def _new_operation_id() -> str:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        return f"rep-{ts}-{uuid.uuid4().hex[:6]}"
