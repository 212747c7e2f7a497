"""mediaswap: promote an edited image across a document corpus.

Given an original asset and its accepted replacement, finds every reference
to the original in document bodies and side tables, rewrites it to the
replacement, and copies the original's descriptive metadata across.
  - Reference Pattern Catalog with seven document shapes
  - Pure, idempotent Rewrite Engine
  - Side-table propagation with serialized-string length repair
  - Best-effort, journaled step sequence with aggregate results
"""

__version__ = "0.1.0"
__description__ = "Reference rewriting for AI-edited image replacement"

from mediaswap.core.orchestrator import (
    PartialPropagationError,
    ReplacementError,
    ReplacementOrchestrator,
)
from mediaswap.core.rewrite import RewriteEngine, rewrite_content

__all__ = [
    "ReplacementOrchestrator",
    "ReplacementError",
    "PartialPropagationError",
    "RewriteEngine",
    "rewrite_content",
    "__version__",
]
