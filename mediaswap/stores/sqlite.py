"""SQLite-backed corpus: assets, documents, document metadata and options.

One database file holds every table; each store class is a thin view over
it.  Containment filtering uses ``instr()`` so matching is an exact,
case-sensitive substring test with no LIKE escaping.

Design:
- Every write replaces a whole value; there are no incremental updates.
- WAL journal mode for concurrent readers.
- Asset custom fields cascade-delete with their asset.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from mediaswap.models.assets import Asset, MetadataBag, SizeVariant
from mediaswap.models.documents import Document, SideTableEntry, SideTableKind
from mediaswap.models.stats import UsageStats
from mediaswap.stores.base import NotFoundError, StoreWriteError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_ASSETS = """
CREATE TABLE IF NOT EXISTS assets (
    asset_id       INTEGER PRIMARY KEY,
    canonical_url  TEXT NOT NULL,
    attached_file  TEXT NOT NULL DEFAULT '',
    mime_type      TEXT NOT NULL DEFAULT '',
    byte_size      INTEGER NOT NULL DEFAULT 0,
    variants_json  TEXT NOT NULL DEFAULT '{}',
    title          TEXT NOT NULL DEFAULT '',
    description    TEXT NOT NULL DEFAULT '',
    caption        TEXT NOT NULL DEFAULT '',
    alt_text       TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_ASSET_FIELDS = """
CREATE TABLE IF NOT EXISTS asset_fields (
    field_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    asset_id     INTEGER NOT NULL REFERENCES assets(asset_id) ON DELETE CASCADE,
    field_key    TEXT NOT NULL,
    field_value  TEXT NOT NULL
);
"""

_CREATE_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS documents (
    document_id  INTEGER PRIMARY KEY,
    title        TEXT NOT NULL DEFAULT '',
    content      TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_DOCUMENT_META = """
CREATE TABLE IF NOT EXISTS document_meta (
    meta_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id  INTEGER NOT NULL,
    meta_key     TEXT NOT NULL,
    meta_value   TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_OPTIONS = """
CREATE TABLE IF NOT EXISTS options (
    option_name   TEXT PRIMARY KEY,
    option_value  TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_USAGE = """
CREATE TABLE IF NOT EXISTS usage_stats (
    id                 INTEGER PRIMARY KEY CHECK (id = 1),
    total              INTEGER NOT NULL DEFAULT 0,
    successful         INTEGER NOT NULL DEFAULT 0,
    failed             INTEGER NOT NULL DEFAULT 0,
    last_operation_at  TEXT
);
"""

_CREATE_IDX_FIELDS = """
CREATE INDEX IF NOT EXISTS idx_asset_fields ON asset_fields(asset_id, field_id);
"""

_CREATE_IDX_META = """
CREATE INDEX IF NOT EXISTS idx_document_meta ON document_meta(document_id, meta_key);
"""


class CorpusDatabase:
    """Connection factory and schema owner for the corpus database.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_schema(self) -> None:
        with self.connect() as conn:
            for ddl in (
                _CREATE_ASSETS,
                _CREATE_ASSET_FIELDS,
                _CREATE_DOCUMENTS,
                _CREATE_DOCUMENT_META,
                _CREATE_OPTIONS,
                _CREATE_USAGE,
                _CREATE_IDX_FIELDS,
                _CREATE_IDX_META,
            ):
                conn.execute(ddl)
            conn.commit()


def _any_contains(column: str, terms: list[str]) -> str:
    return " OR ".join(f"instr({column}, ?) > 0" for _ in terms)


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class SqliteAssetStore:
    """Asset store over the ``assets`` and ``asset_fields`` tables."""

    def __init__(self, db: CorpusDatabase) -> None:
        self._db = db

    def add(self, asset: Asset) -> Asset:
        """Insert an asset with its metadata bag (used when an edit is stored)."""
        bag = asset.metadata
        variants = {
            name: variant.model_dump(mode="json")
            for name, variant in asset.variants.items()
        }
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO assets
                    (asset_id, canonical_url, attached_file, mime_type, byte_size,
                     variants_json, title, description, caption, alt_text)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    asset.asset_id,
                    asset.canonical_url,
                    asset.attached_file,
                    asset.mime_type,
                    asset.byte_size,
                    json.dumps(variants),
                    bag.title,
                    bag.description,
                    bag.caption,
                    bag.alt_text,
                ),
            )
            self._insert_fields(conn, asset.asset_id, bag.fields)
            conn.commit()
        return asset

    def resolve(self, asset_id: int) -> Asset:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM assets WHERE asset_id = ?", (asset_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Asset not found: {asset_id}")
            field_rows = conn.execute(
                "SELECT field_key, field_value FROM asset_fields "
                "WHERE asset_id = ? ORDER BY field_id ASC",
                (asset_id,),
            ).fetchall()
        return self._row_to_asset(row, field_rows)

    def update_metadata(self, asset_id: int, bag: MetadataBag) -> None:
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    """
                    UPDATE assets
                    SET title = ?, description = ?, caption = ?, alt_text = ?
                    WHERE asset_id = ?
                    """,
                    (bag.title, bag.description, bag.caption, bag.alt_text, asset_id),
                )
                if cur.rowcount == 0:
                    raise NotFoundError(f"Asset not found: {asset_id}")
                conn.execute("DELETE FROM asset_fields WHERE asset_id = ?", (asset_id,))
                self._insert_fields(conn, asset_id, bag.fields)
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Metadata write rejected for asset {asset_id}: {exc}"
            ) from exc

    def delete(self, asset_id: int) -> None:
        with self._db.connect() as conn:
            cur = conn.execute("DELETE FROM assets WHERE asset_id = ?", (asset_id,))
            conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError(f"Asset not found: {asset_id}")

    def find_by_url(self, url: str) -> int | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT asset_id FROM assets WHERE canonical_url = ? "
                "ORDER BY asset_id ASC LIMIT 1",
                (url,),
            ).fetchone()
        return row[0] if row else None

    def find_by_file_suffix(self, filename: str) -> int | None:
        if not filename:
            return None
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT asset_id FROM assets "
                "WHERE attached_file = ? OR substr(attached_file, -?) = ? "
                "ORDER BY asset_id ASC LIMIT 1",
                (filename, len(filename) + 1, f"/{filename}"),
            ).fetchone()
        return row[0] if row else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_fields(
        conn: sqlite3.Connection, asset_id: int, fields: dict[str, list[str]]
    ) -> None:
        conn.executemany(
            "INSERT INTO asset_fields (asset_id, field_key, field_value) VALUES (?, ?, ?)",
            [(asset_id, key, value) for key, values in fields.items() for value in values],
        )

    @staticmethod
    def _row_to_asset(row: tuple, field_rows: list[tuple]) -> Asset:
        (
            asset_id,
            canonical_url,
            attached_file,
            mime_type,
            byte_size,
            variants_json,
            title,
            description,
            caption,
            alt_text,
        ) = row
        fields: dict[str, list[str]] = {}
        for key, value in field_rows:
            fields.setdefault(key, []).append(value)
        return Asset(
            asset_id=asset_id,
            canonical_url=canonical_url,
            attached_file=attached_file,
            mime_type=mime_type,
            byte_size=byte_size,
            variants={
                name: SizeVariant(**data)
                for name, data in json.loads(variants_json).items()
            },
            metadata=MetadataBag(
                title=title,
                description=description,
                caption=caption,
                alt_text=alt_text,
                fields=fields,
            ),
        )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class SqliteDocumentStore:
    """Document store over the ``documents`` table."""

    def __init__(self, db: CorpusDatabase) -> None:
        self._db = db

    def add(self, document: Document) -> Document:
        with self._db.connect() as conn:
            conn.execute(
                "INSERT INTO documents (document_id, title, content) VALUES (?, ?, ?)",
                (document.document_id, document.title, document.content),
            )
            conn.commit()
        return document

    def get(self, document_id: int) -> Document:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT document_id, title, content FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return Document(document_id=row[0], title=row[1], content=row[2])

    def find_candidates(self, filter_terms: set[str]) -> list[Document]:
        terms = sorted(t for t in filter_terms if t)
        if not terms:
            return []
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT document_id, title, content FROM documents "
                f"WHERE {_any_contains('content', terms)} ORDER BY document_id ASC",
                terms,
            ).fetchall()
        return [Document(document_id=r[0], title=r[1], content=r[2]) for r in rows]

    def write_content(self, document_id: int, content: str) -> None:
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    "UPDATE documents SET content = ? WHERE document_id = ?",
                    (content, document_id),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Content write rejected for document {document_id}: {exc}"
            ) from exc
        if cur.rowcount == 0:
            raise NotFoundError(f"Document not found: {document_id}")


# ---------------------------------------------------------------------------
# Side tables
# ---------------------------------------------------------------------------


class SqliteDocumentMetaTable:
    """Per-document metadata side table; entries are keyed by ``meta_id``."""

    kind = SideTableKind.DOCUMENT_META

    def __init__(self, db: CorpusDatabase) -> None:
        self._db = db

    def add(self, document_id: int, meta_key: str, meta_value: str) -> SideTableEntry:
        with self._db.connect() as conn:
            cur = conn.execute(
                "INSERT INTO document_meta (document_id, meta_key, meta_value) "
                "VALUES (?, ?, ?)",
                (document_id, meta_key, meta_value),
            )
            conn.commit()
        return SideTableEntry(
            kind=self.kind,
            key=str(cur.lastrowid),
            value=meta_value,
            label=meta_key,
            owner_id=document_id,
        )

    def get(self, key: str) -> SideTableEntry:
        return self._one("meta_id = ?", (int(key),), key)

    def get_for_document(self, document_id: int, meta_key: str) -> list[SideTableEntry]:
        return self._select(
            "document_id = ? AND meta_key = ?", (document_id, meta_key)
        )

    def find_entries_containing(self, token: str) -> list[SideTableEntry]:
        return self._select("instr(meta_value, ?) > 0", (token,))

    def find_entries_equal(
        self, value: str, label: str | None = None
    ) -> list[SideTableEntry]:
        if label is None:
            return self._select("meta_value = ?", (value,))
        return self._select("meta_value = ? AND meta_key = ?", (value, label))

    def write_entry(self, key: str, value: str) -> None:
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    "UPDATE document_meta SET meta_value = ? WHERE meta_id = ?",
                    (value, int(key)),
                )
                conn.commit()
        except (sqlite3.Error, ValueError) as exc:
            raise StoreWriteError(f"Meta write rejected for {key}: {exc}") from exc
        if cur.rowcount == 0:
            raise StoreWriteError(f"No document meta entry {key} to write")

    def _one(self, where: str, params: tuple, key: str) -> SideTableEntry:
        rows = self._select(where, params)
        if not rows:
            raise NotFoundError(f"Document meta entry not found: {key}")
        return rows[0]

    def _select(self, where: str, params: tuple) -> list[SideTableEntry]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT meta_id, document_id, meta_key, meta_value FROM document_meta "
                f"WHERE {where} ORDER BY meta_id ASC",
                params,
            ).fetchall()
        return [
            SideTableEntry(
                kind=self.kind,
                key=str(meta_id),
                value=meta_value,
                label=meta_key,
                owner_id=document_id,
            )
            for meta_id, document_id, meta_key, meta_value in rows
        ]


class SqliteOptionTable:
    """Global option side table, optionally narrowed by option-name prefix.

    Widget configurations are the options whose names start with the widget
    prefix; build one table with ``include_prefix`` and the general options
    table with ``exclude_prefix`` so no entry is visited twice.
    """

    def __init__(
        self,
        db: CorpusDatabase,
        *,
        kind: SideTableKind = SideTableKind.OPTION,
        include_prefix: str | None = None,
        exclude_prefix: str | None = None,
    ) -> None:
        self._db = db
        self.kind = kind
        self._include_prefix = include_prefix
        self._exclude_prefix = exclude_prefix

    def set(self, name: str, value: str) -> SideTableEntry:
        """Create or overwrite an option."""
        with self._db.connect() as conn:
            conn.execute(
                "INSERT INTO options (option_name, option_value) VALUES (?, ?) "
                "ON CONFLICT(option_name) DO UPDATE SET option_value = excluded.option_value",
                (name, value),
            )
            conn.commit()
        return SideTableEntry(kind=self.kind, key=name, value=value, label=name)

    def get(self, name: str) -> SideTableEntry:
        rows = self._select("option_name = ?", (name,))
        if not rows:
            raise NotFoundError(f"Option not found: {name}")
        return rows[0]

    def find_entries_containing(self, token: str) -> list[SideTableEntry]:
        return self._select("instr(option_value, ?) > 0", (token,))

    def find_entries_equal(
        self, value: str, label: str | None = None
    ) -> list[SideTableEntry]:
        if label is None:
            return self._select("option_value = ?", (value,))
        return self._select("option_value = ? AND option_name = ?", (value, label))

    def write_entry(self, key: str, value: str) -> None:
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    "UPDATE options SET option_value = ? WHERE option_name = ?",
                    (value, key),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Option write rejected for {key}: {exc}") from exc
        if cur.rowcount == 0:
            raise StoreWriteError(f"No option {key} to write")

    def _select(self, where: str, params: tuple) -> list[SideTableEntry]:
        clauses = [where]
        args = list(params)
        if self._include_prefix is not None:
            clauses.append("substr(option_name, 1, ?) = ?")
            args += [len(self._include_prefix), self._include_prefix]
        if self._exclude_prefix is not None:
            clauses.append("substr(option_name, 1, ?) != ?")
            args += [len(self._exclude_prefix), self._exclude_prefix]
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT option_name, option_value FROM options "
                f"WHERE {' AND '.join(clauses)} ORDER BY option_name ASC",
                args,
            ).fetchall()
        return [
            SideTableEntry(kind=self.kind, key=name, value=value, label=name)
            for name, value in rows
        ]


# ---------------------------------------------------------------------------
# Usage statistics
# ---------------------------------------------------------------------------


class SqliteUsageStore:
    """Persists the single ``UsageStats`` row of a corpus."""

    def __init__(self, db: CorpusDatabase) -> None:
        self._db = db

    def load(self) -> UsageStats:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT total, successful, failed, last_operation_at "
                "FROM usage_stats WHERE id = 1"
            ).fetchone()
        if row is None:
            return UsageStats()
        total, successful, failed, last_operation_at = row
        return UsageStats(
            total=total,
            successful=successful,
            failed=failed,
            last_operation_at=last_operation_at,
        )

    def save(self, stats: UsageStats) -> None:
        last = stats.last_operation_at.isoformat() if stats.last_operation_at else None
        try:
            with self._db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO usage_stats (id, total, successful, failed, last_operation_at)
                    VALUES (1, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        total = excluded.total,
                        successful = excluded.successful,
                        failed = excluded.failed,
                        last_operation_at = excluded.last_operation_at
                    """,
                    (stats.total, stats.successful, stats.failed, last),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Usage stats write rejected: {exc}") from exc


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class Corpus:
    """Every store over one corpus database, wired with the default tables."""

    def __init__(self, db_path: Path, *, widget_option_prefix: str = "widget_") -> None:
        self.db = CorpusDatabase(db_path)
        self.assets = SqliteAssetStore(self.db)
        self.documents = SqliteDocumentStore(self.db)
        self.document_meta = SqliteDocumentMetaTable(self.db)
        self.widgets = SqliteOptionTable(
            self.db, kind=SideTableKind.WIDGET, include_prefix=widget_option_prefix
        )
        self.options = SqliteOptionTable(
            self.db, kind=SideTableKind.OPTION, exclude_prefix=widget_option_prefix
        )
        self.usage = SqliteUsageStore(self.db)

    @property
    def side_tables(self) -> list:
        return [self.document_meta, self.widgets, self.options]
