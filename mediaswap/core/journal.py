"""Append-only operation journal backed by SQLite.

Every step transition and every per-document/per-entry write outcome of a
replacement operation lands here.  The aggregate ``ReplacementResult``
stays small; callers that need per-document detail read it from the
journal explicitly.

Design:
- Append-only: only `append()` writes; no update, no delete.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from mediaswap.models.operations import JournalEntry


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS operation_journal (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id       TEXT NOT NULL UNIQUE,
    operation_id   TEXT NOT NULL,
    step           TEXT NOT NULL,
    transition     TEXT NOT NULL DEFAULT '',
    event          TEXT NOT NULL DEFAULT '',
    subject        TEXT NOT NULL DEFAULT '',
    detail         TEXT NOT NULL DEFAULT '',
    timestamp_utc  TEXT NOT NULL
);
"""

_CREATE_IDX_OPERATION = """
CREATE INDEX IF NOT EXISTS idx_operation_id ON operation_journal(operation_id, id);
"""


class ReplacementJournal:
    """Append-only journal of replacement operations.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_JOURNAL)
            conn.execute(_CREATE_IDX_OPERATION)
            conn.commit()

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, entry: JournalEntry) -> JournalEntry:
        """Persist *entry*. This is the ONLY write method."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO operation_journal
                    (entry_id, operation_id, step, transition, event,
                     subject, detail, timestamp_utc)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entry_id,
                    entry.operation_id,
                    entry.step,
                    entry.transition,
                    entry.event,
                    entry.subject,
                    entry.detail,
                    entry.timestamp_utc.isoformat()
                    if isinstance(entry.timestamp_utc, datetime)
                    else entry.timestamp_utc,
                ),
            )
            conn.commit()
        return entry

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get_operation_entries(self, operation_id: str) -> list[JournalEntry]:
        """Return all entries for an operation, oldest first."""
        return self._select("operation_id = ?", (operation_id,))

    def get_subject_outcomes(self, operation_id: str) -> list[JournalEntry]:
        """Return the per-document/per-entry events for an operation."""
        return self._select("operation_id = ? AND subject != ''", (operation_id,))

    def get_step_transitions(self, operation_id: str, step: str) -> list[JournalEntry]:
        return self._select(
            "operation_id = ? AND step = ? AND transition != ''", (operation_id, step)
        )

    def get_all_operation_ids(self) -> list[str]:
        """Return distinct operation ids, most recent first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT operation_id, MAX(id) AS last_id FROM operation_journal "
                "GROUP BY operation_id ORDER BY last_id DESC"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _select(self, where: str, params: tuple) -> list[JournalEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM operation_journal WHERE {where} ORDER BY id ASC",
                params,
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        """Convert a SQLite row tuple to a JournalEntry."""
        (
            _id,
            entry_id,
            operation_id,
            step,
            transition,
            event,
            subject,
            detail,
            timestamp_utc,
        ) = row
        return JournalEntry(
            entry_id=entry_id,
            operation_id=operation_id,
            step=step,
            transition=transition,
            event=event,
            subject=subject,
            detail=detail,
            timestamp_utc=timestamp_utc,
        )
