"""Periodic comment sync driven by APScheduler."""
from __future__ import annotations

from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from holistic_money.core.config import SyncSettings
from holistic_money.core.errors import ConflictError
from holistic_money.core.logger import get_logger

from .sync_service import CommentSyncService

LOGGER = get_logger(__name__)

JOB_ID = "comment-sync"


class SyncScheduler:
    """Run :meth:`CommentSyncService.sync_all` every ``frequency_minutes``."""

    def __init__(
        self,
        sync: CommentSyncService,
        settings: SyncSettings,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._sync = sync
        self._settings = settings
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> bool:
        if not self._settings.enabled:
            LOGGER.info("Scheduled sync disabled")
            return False
        if self.running:
            return True

        job_options = {
            "id": JOB_ID,
            "minutes": self._settings.frequency_minutes,
            "max_instances": 1,
            "coalesce": True,
            "replace_existing": True,
        }
        if self._settings.run_on_startup:
            job_options["next_run_time"] = datetime.now(tz=timezone.utc)
        self._scheduler.add_job(self.run_once, "interval", **job_options)
        self._scheduler.start()
        LOGGER.info(
            "Scheduled comment sync every %s minutes (run on startup: %s)",
            self._settings.frequency_minutes,
            self._settings.run_on_startup,
        )
        return True

    def run_once(self) -> None:
        try:
            self._sync.sync_all(force=True)
        except ConflictError:
            LOGGER.info("Skipping scheduled sync: a sync is already running")

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            LOGGER.info("Sync scheduler stopped")


__all__ = ["JOB_ID", "SyncScheduler"]
