"""Explicit, thread-safe usage counter for replacement operations."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timezone

from mediaswap.models.stats import UsageStats


class UsageCounter:
    """Counts replacement outcomes.

    Passed into the orchestrator rather than kept as process-wide state, so
    each caller owns its own counter.  When *sink* is given, every new
    snapshot is handed to it while the lock is held, so persisted counts
    are written in the order they were recorded.
    """

    def __init__(
        self,
        initial: UsageStats | None = None,
        *,
        sink: Callable[[UsageStats], None] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._stats = initial or UsageStats()
        self._sink = sink

    def record(self, success: bool = True) -> UsageStats:
        """Record one operation outcome and return the new snapshot."""
        with self._lock:
            stats = self._stats
            self._stats = UsageStats(
                total=stats.total + 1,
                successful=stats.successful + (1 if success else 0),
                failed=stats.failed + (0 if success else 1),
                last_operation_at=datetime.now(timezone.utc),
            )
            if self._sink is not None:
                self._sink(self._stats)
            return self._stats

    def snapshot(self) -> UsageStats:
        with self._lock:
            return self._stats
