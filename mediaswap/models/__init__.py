"""mediaswap data models — all Pydantic v2, all frozen (immutable)."""

from mediaswap.models.assets import Asset, MetadataBag, SizeVariant
from mediaswap.models.documents import Document, SideTableEntry, SideTableKind
from mediaswap.models.operations import (
    VALID_STEP_TRANSITIONS,
    WORK_STEPS,
    JournalEntry,
    ReplacementResult,
    ReplacementStep,
    StepOutcome,
    StepReport,
    StepState,
    SubjectOutcome,
)
from mediaswap.models.stats import UsageStats

__all__ = [
    # assets
    "Asset",
    "MetadataBag",
    "SizeVariant",
    # documents
    "Document",
    "SideTableEntry",
    "SideTableKind",
    # operations
    "ReplacementStep",
    "StepState",
    "StepOutcome",
    "StepReport",
    "SubjectOutcome",
    "ReplacementResult",
    "JournalEntry",
    "VALID_STEP_TRANSITIONS",
    "WORK_STEPS",
    # stats
    "UsageStats",
]
