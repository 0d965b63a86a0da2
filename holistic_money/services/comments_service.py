"""Append-only comment log per ledger entry.

Edits never change a row: every add or update inserts a new version and the
current comment is projected at read time. The latest version of an entry
is the row with the greatest ``updated_at``, ties broken by ``created_at``
and then ``comment_id``.
"""
from __future__ import annotations

import uuid
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import Table, delete, func, insert, inspect, select

from holistic_money.core.errors import (
    NotFoundError,
    ServiceUnavailableError,
    require_fields,
)
from holistic_money.core.logger import get_logger
from holistic_money.db.bootstrap import ensure_comments_table
from holistic_money.models import DELETED_SENTINEL, comments_table
from holistic_money.schemas import CommentOut, CommentsDeleted

from .base import StoreBackedService
from .clients_service import ClientsService

LOGGER = get_logger(__name__)

UNAVAILABLE_WARNING = "Database connection is not available, comment was not saved"
DEFAULT_AUTHOR = "User"


def _tie_break_key(row: Mapping[str, Any]) -> tuple:
    return (row["updated_at"], row["created_at"], row["comment_id"])


def project_latest(rows: Iterable[Mapping[str, Any]]) -> dict[str, Mapping[str, Any]]:
    """Reduce comment versions to the current comment per ``entry_id``.

    Entries whose latest version is the ``[DELETED]`` marker have no comment.
    """

    latest: dict[str, Mapping[str, Any]] = {}
    for row in rows:
        current = latest.get(row["entry_id"])
        if current is None or _tie_break_key(row) > _tie_break_key(current):
            latest[row["entry_id"]] = row
    return {
        entry_id: row
        for entry_id, row in latest.items()
        if row["comment_text"] != DELETED_SENTINEL
    }


class CommentsService(StoreBackedService):
    """Write and project comment versions stored in per-client tables."""

    def add(
        self,
        entry_id: str | None,
        comment_text: str | None,
        created_by: str | None,
        client: str | None,
    ) -> CommentOut:
        require_fields(
            entry_id=entry_id, comment_text=comment_text, created_by=created_by, client=client
        )
        return self._append(entry_id, comment_text, created_by, client)[0]

    def update(
        self,
        entry_id: str,
        comment_text: str | None,
        client: str | None,
        created_by: str | None = None,
        user_email: str | None = None,
    ) -> tuple[CommentOut, bool]:
        """Append a new version. Returns ``(comment, created)``.

        ``created`` is true when the entry had no earlier version.
        """

        require_fields(comment_text=comment_text, client=client)
        author = created_by or user_email or DEFAULT_AUTHOR
        return self._append(entry_id, comment_text, author, client)

    def delete(self, entry_id: str, client: str | None) -> CommentsDeleted:
        """Hard-delete every version of ``entry_id``."""

        require_fields(client=client)
        if not self._store.is_available():
            raise ServiceUnavailableError(
                "Database connection is not available", error="Comment could not be deleted"
            )
        table = self._existing_table(self._resolve_table_name(client, "delete comment"))
        if table is None:
            raise NotFoundError("Comment not found")
        with self._session("delete comment") as session:
            result = session.execute(delete(table).where(table.c.entry_id == entry_id))
            deleted = result.rowcount or 0
            if deleted == 0:
                raise NotFoundError("Comment not found")
        LOGGER.info("Deleted %s comment versions for entry %s", deleted, entry_id)
        return CommentsDeleted(
            message="Comment deleted successfully", entry_id=entry_id, deleted_count=deleted
        )

    def latest_for_entries(
        self, table_name: str, entry_ids: Sequence[str]
    ) -> dict[str, Mapping[str, Any]]:
        """Return the current comment for each entry in ``entry_ids``."""

        table = self._existing_table(table_name)
        if not entry_ids or table is None:
            return {}
        ranked = (
            select(
                table,
                func.row_number()
                .over(
                    partition_by=table.c.entry_id,
                    order_by=(
                        table.c.updated_at.desc(),
                        table.c.created_at.desc(),
                        table.c.comment_id.desc(),
                    ),
                )
                .label("version_rank"),
            )
            .where(table.c.entry_id.in_(list(dict.fromkeys(entry_ids))))
            .subquery()
        )
        query = select(*(ranked.c[name] for name in table.c.keys())).where(
            ranked.c.version_rank == 1
        )
        with self._session("fetch comments") as session:
            rows = [dict(row) for row in session.execute(query).mappings()]
        return project_latest(rows)

    def history(self, table_name: str) -> list[dict[str, Any]]:
        """Every version stored in ``table_name``, newest first."""

        table = self._existing_table(table_name)
        if table is None:
            return []
        query = select(table).order_by(table.c.updated_at.desc(), table.c.created_at.desc())
        with self._session("fetch comment history") as session:
            return [dict(row) for row in session.execute(query).mappings()]

    def history_for_entry(self, client: str | None, entry_id: str) -> list[CommentOut]:
        require_fields(client=client)
        table = self._existing_table(self._resolve_table_name(client, "fetch comment history"))
        versions: list[CommentOut] = []
        if table is not None:
            with self._session("fetch comment history") as session:
                rows = session.execute(
                    select(table)
                    .where(table.c.entry_id == entry_id)
                    .order_by(table.c.updated_at.desc(), table.c.created_at.desc())
                ).mappings()
                versions = [CommentOut(**row) for row in rows]
        if not versions:
            raise NotFoundError("Comment not found")
        return versions

    def _append(
        self, entry_id: str, comment_text: str, author: str, client: str
    ) -> tuple[CommentOut, bool]:
        now = self._now()
        comment = CommentOut(
            comment_id=str(uuid.uuid4()),
            entry_id=entry_id,
            comment_text=comment_text,
            created_by=author,
            created_at=now,
            updated_at=now,
        )
        if not self._store.is_available():
            LOGGER.warning("Comment for entry %s not persisted: store unavailable", entry_id)
            comment.warning = UNAVAILABLE_WARNING
            return comment, False

        table_name = self._resolve_table_name(client, "save comment")
        with self._translate_errors("save comment"):
            ensure_comments_table(self._store, table_name)
        table = comments_table(table_name)
        with self._session("save comment") as session:
            existing = session.scalar(
                select(func.count()).select_from(table).where(table.c.entry_id == entry_id)
            )
            session.execute(
                insert(table).values(**comment.model_dump(exclude={"warning"}))
            )
        LOGGER.info("Saved comment %s for entry %s", comment.comment_id, entry_id)
        return comment, not existing

    def _resolve_table_name(self, client: str, action: str) -> str:
        with self._session(action) as session:
            return ClientsService.find_by_name(session, client).comments_table_name

    def _existing_table(self, table_name: str) -> Table | None:
        with self._translate_errors("inspect comments table"):
            if not inspect(self._store.engine).has_table(table_name):
                return None
        return comments_table(table_name)


__all__ = [
    "CommentsService",
    "DEFAULT_AUTHOR",
    "UNAVAILABLE_WARNING",
    "project_latest",
]
