"""Health and sync trigger routes."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends

from holistic_money.core.logger import get_logger
from holistic_money.core.security import AuthenticatedUser, get_authenticated_user
from holistic_money.db.store import RelationalStore
from holistic_money.schemas import HealthStatus, SyncRequest, SyncResponse
from holistic_money.services import CommentSyncService

from .dependencies import get_store, get_sync_service

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthStatus)
def health(store: RelationalStore = Depends(get_store)) -> HealthStatus:
    return HealthStatus(
        status="up",
        postgresConnected=store.is_available(),
        timestamp=datetime.now(tz=timezone.utc),
    )


@router.post("/trigger-sync", response_model=SyncResponse)
def trigger_sync(
    payload: SyncRequest | None = Body(default=None),
    user: AuthenticatedUser = Depends(get_authenticated_user),
    sync: CommentSyncService = Depends(get_sync_service),
) -> SyncResponse:
    """Run a full comment export now and report per-client results."""

    force = payload.force if payload else True
    LOGGER.info("Manual sync triggered by %s (force=%s)", user.email, force)
    report = sync.sync_all(force=force)
    return SyncResponse(
        success=report.success,
        message=report.summary(),
        force=report.force,
        timestamp=report.started_at,
        results=report.results,
        error="; ".join(f"{r.client_name}: {r.error}" for r in report.failed) or None,
    )
