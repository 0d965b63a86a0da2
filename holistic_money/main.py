"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from holistic_money.core import get_logger, get_settings
from holistic_money.core.credentials import setup_credential_files
from holistic_money.core.errors import HolisticMoneyError, register_error_handlers
from holistic_money.core.logger import init_logging, shutdown_logging
from holistic_money.core.security import get_security_provider
from holistic_money.db import get_relational_store, init_user_management
from holistic_money.middleware import BearerTokenMiddleware, SecurityHeadersMiddleware
from holistic_money.routers import (
    auth_router,
    clients_router,
    financial_router,
    system_router,
    users_router,
)
from holistic_money.routers.dependencies import get_sync_service
from holistic_money.services import SyncScheduler

LOGGER = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    init_logging(level=settings.log_level, log_dir=settings.log_dir)

    app = FastAPI(title="Holistic Money API", version="1.0.0")
    security_provider = get_security_provider()
    app.add_middleware(BearerTokenMiddleware, security_provider=security_provider)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(clients_router)
    app.include_router(financial_router)
    app.include_router(users_router)
    app.include_router(system_router)

    @app.on_event("startup")
    def connect_stores() -> None:
        setup_credential_files(settings)
        store = get_relational_store()
        if store.probe():
            init_user_management(store, settings.auth, security_provider)
        else:
            LOGGER.warning("Starting without PostgreSQL; comments will not be persisted")
        if not settings.sync.enabled:
            LOGGER.info("Scheduled sync disabled")
            return
        try:
            scheduler = SyncScheduler(get_sync_service(), settings.sync)
        except HolisticMoneyError as exc:
            LOGGER.error("Scheduled sync not started: %s", exc.error or exc.message)
            return
        scheduler.start()
        app.state.sync_scheduler = scheduler

    @app.on_event("shutdown")
    def stop_background_work() -> None:
        scheduler: SyncScheduler | None = getattr(app.state, "sync_scheduler", None)
        if scheduler is not None:
            scheduler.shutdown()
        get_relational_store().dispose()
        LOGGER.info("Shutdown complete")
        shutdown_logging()

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
