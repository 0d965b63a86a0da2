"""Schemas for financial comment writes."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CommentCreate(BaseModel):
    entry_id: str | None = None
    comment_text: str | None = None
    created_by: str | None = None
    client: str | None = None


class CommentUpdate(BaseModel):
    comment_text: str | None = None
    client: str | None = None
    created_by: str | None = None


class CommentDelete(BaseModel):
    client: str | None = None


class CommentOut(BaseModel):
    """One comment version. ``warning`` is set when the write was not persisted."""

    comment_id: str
    entry_id: str
    comment_text: str
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime
    warning: str | None = None


class CommentsDeleted(BaseModel):
    message: str
    entry_id: str
    deleted_count: int
