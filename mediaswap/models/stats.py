"""Usage statistics snapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UsageStats(BaseModel):
    """Aggregate outcome counts for replacement operations."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    successful: int = 0
    failed: int = 0
    last_operation_at: datetime | None = None
