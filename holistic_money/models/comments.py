"""Per-client comment tables.

Every client owns one append-only comment table whose name is stored on the
client row. The tables share a layout, so they are described with a single
SQLAlchemy Core factory instead of one ORM class per client.
"""
from __future__ import annotations

import re
from threading import Lock

from sqlalchemy import Column, DateTime, Index, MetaData, String, Table, Text

DELETED_SENTINEL = "[DELETED]"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_metadata = MetaData()
_tables_lock = Lock()


def is_valid_table_name(name: str | None) -> bool:
    return bool(name) and bool(_IDENTIFIER.match(name))


def comments_table(name: str) -> Table:
    """Return the Core ``Table`` for a client's comments, defining it on first use."""

    if not is_valid_table_name(name):
        raise ValueError(f"Invalid comments table name: {name!r}")
    with _tables_lock:
        existing = _metadata.tables.get(name)
        if existing is not None:
            return existing
        return Table(
            name,
            _metadata,
            Column("comment_id", String(36), primary_key=True),
            Column("entry_id", String(255), nullable=False),
            Column("comment_text", Text, nullable=False),
            Column("created_by", String(255)),
            Column("created_at", DateTime(timezone=True), nullable=False),
            Column("updated_at", DateTime(timezone=True), nullable=False),
            Index(f"ix_{name}_entry"[:63], "entry_id", "updated_at"),
        )


__all__ = ["DELETED_SENTINEL", "comments_table", "is_valid_table_name"]
