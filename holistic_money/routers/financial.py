"""P&L report and comment routes."""
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, Response, status

from holistic_money.core.logger import get_logger
from holistic_money.core.security import AuthenticatedUser, get_optional_user
from holistic_money.schemas import (
    CommentCreate,
    CommentDelete,
    CommentOut,
    CommentsDeleted,
    CommentUpdate,
    FinancialReport,
)
from holistic_money.services import CommentsService, FinancialReportService

from .dependencies import get_comments_service, get_financial_service, require_client_access

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["financial"])


@router.get("/financial-data", response_model=FinancialReport)
def financial_data(
    client: str = Depends(require_client_access),
    month: str | None = Query(default=None),
    reports: FinancialReportService = Depends(get_financial_service),
) -> FinancialReport:
    """Grouped P&L lines for ``client``, optionally limited to ``month`` (``YYYY-MM``)."""

    LOGGER.info("Fetching financial data for %s (month=%s)", client, month)
    return reports.get_report(client, month)


@router.post(
    "/financial-comments",
    response_model=CommentOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    payload: CommentCreate,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    comments: CommentsService = Depends(get_comments_service),
) -> CommentOut:
    created_by = payload.created_by or (user.email if user else None)
    return comments.add(payload.entry_id, payload.comment_text, created_by, payload.client)


@router.get("/financial-comments/{entry_id}", response_model=list[CommentOut])
def comment_history(
    entry_id: str,
    client: str | None = Query(default=None),
    comments: CommentsService = Depends(get_comments_service),
) -> list[CommentOut]:
    return comments.history_for_entry(client, entry_id)


@router.patch(
    "/financial-comments/{entry_id}",
    response_model=CommentOut,
    response_model_exclude_none=True,
)
def update_comment(
    entry_id: str,
    payload: CommentUpdate,
    response: Response,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    comments: CommentsService = Depends(get_comments_service),
) -> CommentOut:
    """Record a new version of the entry's comment."""

    comment, created = comments.update(
        entry_id,
        payload.comment_text,
        payload.client,
        created_by=payload.created_by,
        user_email=user.email if user else None,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return comment


@router.delete("/financial-comments/{entry_id}", response_model=CommentsDeleted)
def delete_comment(
    entry_id: str,
    payload: CommentDelete | None = Body(default=None),
    client: str | None = Query(default=None),
    comments: CommentsService = Depends(get_comments_service),
) -> CommentsDeleted:
    """Delete every version of the entry's comment.

    ``client`` is read from the JSON body or the query string.
    """

    return comments.delete(entry_id, (payload.client if payload else None) or client)
