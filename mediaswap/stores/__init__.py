"""Corpus stores — collaborator Protocols and SQLite implementations."""

from mediaswap.stores.base import (
    AssetStore,
    DocumentStore,
    NotFoundError,
    SideTableStore,
    StoreWriteError,
)
from mediaswap.stores.sqlite import (
    Corpus,
    CorpusDatabase,
    SqliteAssetStore,
    SqliteDocumentMetaTable,
    SqliteDocumentStore,
    SqliteOptionTable,
    SqliteUsageStore,
)

__all__ = [
    "AssetStore",
    "DocumentStore",
    "SideTableStore",
    "NotFoundError",
    "StoreWriteError",
    "Corpus",
    "CorpusDatabase",
    "SqliteAssetStore",
    "SqliteDocumentStore",
    "SqliteDocumentMetaTable",
    "SqliteOptionTable",
    "SqliteUsageStore",
]
