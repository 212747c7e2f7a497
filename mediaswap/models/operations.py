"""Replacement operation models — steps, step states, results, journal rows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReplacementStep(str, Enum):
    """The linear sequence a replacement operation walks through."""

    START = "start"
    SCAN_AND_REWRITE_DOCS = "scan_and_rewrite_docs"
    REWRITE_FEATURED_REFS = "rewrite_featured_refs"
    PROPAGATE_SIDE_TABLES = "propagate_side_tables"
    CLONE_METADATA = "clone_metadata"
    DONE = "done"


# Work steps in execution order; START and DONE are markers only.
WORK_STEPS: list[ReplacementStep] = [
    ReplacementStep.SCAN_AND_REWRITE_DOCS,
    ReplacementStep.REWRITE_FEATURED_REFS,
    ReplacementStep.PROPAGATE_SIDE_TABLES,
    ReplacementStep.CLONE_METADATA,
]


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


# FAILED is terminal: a step is never retried inside one operation.
VALID_STEP_TRANSITIONS: dict[StepState, set[StepState]] = {
    StepState.PENDING: {StepState.RUNNING},
    StepState.RUNNING: {StepState.PASSED, StepState.FAILED},
    StepState.PASSED: set(),
    StepState.FAILED: set(),
}


class StepOutcome(BaseModel):
    """What a single work step did."""

    model_config = ConfigDict(frozen=True)

    step: ReplacementStep
    state: StepState
    changed: int = 0
    failed: int = 0
    error: str = ""


class ReplacementResult(BaseModel):
    """Aggregate result returned to the caller of ``replace``.

    Per-document outcomes are deliberately absent; they live in the
    operation journal and the log.
    """

    model_config = ConfigDict(frozen=True)

    operation_id: str
    original_id: int
    replacement_id: int
    replacement_url: str
    documents_changed: int = 0
    documents_failed: int = 0
    side_entries_changed: int = 0
    dangling_variants: list[str] = []
    steps: list[StepOutcome] = []

    @property
    def failed_steps(self) -> list[ReplacementStep]:
        return [o.step for o in self.steps if o.state == StepState.FAILED]

    @property
    def succeeded(self) -> bool:
        return not self.failed_steps


class JournalEntry(BaseModel):
    """One append-only row in the operation journal.

    Step rows carry ``transition`` ("pending->running"); subject rows carry
    an ``event`` ("rewritten", "write_failed", ...) and the ``subject`` key.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    operation_id: str
    step: str
    transition: str = ""
    event: str = ""
    subject: str = ""
    detail: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class SubjectOutcome(BaseModel):
    """What happened to one document or side-table entry."""

    model_config = ConfigDict(frozen=True)

    subject: str  # "document:12", "document_meta:7", "widget:widget_media_image"
    event: str  # "rewritten" | "write_failed"
    detail: str = ""


class StepReport(BaseModel):
    """Counts and per-subject outcomes produced by one work step."""

    model_config = ConfigDict(frozen=True)

    changed: int = 0
    failed: int = 0
    dangling_variants: list[str] = []
    subjects: list[SubjectOutcome] = []
