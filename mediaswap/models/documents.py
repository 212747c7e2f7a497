"""Document and side-table models — rows owned by the corpus."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Document(BaseModel):
    """A corpus document: identity plus its single text body."""

    model_config = ConfigDict(frozen=True)

    document_id: int
    content: str
    title: str = ""


class SideTableKind(str, Enum):
    """The auxiliary key/value stores that may embed asset identifiers."""

    DOCUMENT_META = "document_meta"
    OPTION = "option"
    WIDGET = "widget"


class SideTableEntry(BaseModel):
    """A key/value pair in a side table.

    ``key`` is the store's write key (meta row id or option name);
    ``label`` is the human-facing field name (meta key or option name) and
    ``owner_id`` the owning document for per-document metadata.
    """

    model_config = ConfigDict(frozen=True)

    kind: SideTableKind
    key: str
    value: str
    label: str = ""
    owner_id: int | None = None
