"""Shared FastAPI dependency definitions.

Routers resolve stores and services through these functions so tests can
swap them with ``app.dependency_overrides``.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Query, Request
from google.auth.exceptions import GoogleAuthError

from holistic_money.analytics import AnalyticsStore, get_analytics_store
from holistic_money.core.config import get_settings
from holistic_money.core.errors import BadRequestError, InternalError, PermissionDeniedError
from holistic_money.core.logger import get_logger
from holistic_money.core.security import (
    AuthenticatedUser,
    SecurityProvider,
    get_authenticated_user,
    get_security_provider,
)
from holistic_money.db.store import RelationalStore, get_relational_store
from holistic_money.services import (
    AccessPolicy,
    ClientsService,
    CommentsService,
    CommentSyncService,
    FinancialReportService,
    UserService,
    build_access_policy,
)

LOGGER = get_logger(__name__)


def get_store() -> RelationalStore:
    return get_relational_store()


def get_analytics() -> AnalyticsStore:
    """Return the BigQuery store, or fail the request when it cannot be built."""

    try:
        return get_analytics_store()
    except (GoogleAuthError, OSError, ValueError) as exc:
        LOGGER.error("BigQuery client unavailable: %s", exc)
        raise InternalError("BigQuery is not configured", error=str(exc)) from exc


def get_security() -> SecurityProvider:
    return get_security_provider()


@lru_cache(maxsize=1)
def _shared_sync_service() -> CommentSyncService:
    return CommentSyncService(
        get_relational_store(), get_analytics(), get_settings().bigquery
    )


def get_sync_service() -> CommentSyncService:
    """Return the process-wide sync service so its run lock is shared."""

    return _shared_sync_service()


def get_clients_service(store: RelationalStore = Depends(get_store)) -> ClientsService:
    return ClientsService(store)


def get_comments_service(store: RelationalStore = Depends(get_store)) -> CommentsService:
    return CommentsService(store)


def get_user_service(
    store: RelationalStore = Depends(get_store),
    security: SecurityProvider = Depends(get_security),
) -> UserService:
    return UserService(store, security)


def get_financial_service(
    store: RelationalStore = Depends(get_store),
    analytics: AnalyticsStore = Depends(get_analytics),
) -> FinancialReportService:
    return FinancialReportService(store, analytics, get_settings().bigquery)


def get_access_policy(
    users: UserService = Depends(get_user_service),
) -> AccessPolicy:
    return build_access_policy(get_settings().auth, users.store, users)


def require_client_access(
    request: Request,
    client: str | None = Query(default=None),
    policy: AccessPolicy = Depends(get_access_policy),
) -> str:
    """Authenticate the caller and check they may read ``client``."""

    user: AuthenticatedUser = get_authenticated_user(request)
    if not client:
        raise BadRequestError("Client parameter is required")
    if not policy.can_access(user, client):
        LOGGER.info("Client access denied", extra={"email": user.email, "client": client})
        raise PermissionDeniedError("Access denied to this client")
    return client


__all__ = [
    "get_access_policy",
    "get_analytics",
    "get_clients_service",
    "get_comments_service",
    "get_financial_service",
    "get_security",
    "get_store",
    "get_sync_service",
    "get_user_service",
    "require_client_access",
]
