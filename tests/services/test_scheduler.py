from unittest.mock import create_autospec

from apscheduler.schedulers.background import BackgroundScheduler

from holistic_money.core.config import SyncSettings
from holistic_money.core.errors import ConflictError
from holistic_money.services import CommentSyncService, SyncScheduler
from holistic_money.services.scheduler import JOB_ID


def _scheduler(settings: SyncSettings):
    sync = create_autospec(CommentSyncService, instance=True)
    backend = create_autospec(BackgroundScheduler, instance=True)
    backend.running = False
    return SyncScheduler(sync, settings, scheduler=backend), sync, backend


def test_disabled_scheduler_does_not_start() -> None:
    scheduler, _, backend = _scheduler(SyncSettings(enabled=False))

    assert scheduler.start() is False
    backend.add_job.assert_not_called()
    backend.start.assert_not_called()


def test_enabled_scheduler_registers_interval_job() -> None:
    scheduler, _, backend = _scheduler(SyncSettings(enabled=True, frequency_minutes=15))

    assert scheduler.start() is True

    args, kwargs = backend.add_job.call_args
    assert args == (scheduler.run_once, "interval")
    assert kwargs["id"] == JOB_ID
    assert kwargs["minutes"] == 15
    assert kwargs["max_instances"] == 1
    assert kwargs["coalesce"] is True
    assert "next_run_time" not in kwargs
    backend.start.assert_called_once_with()


def test_run_on_startup_schedules_immediate_run() -> None:
    scheduler, _, backend = _scheduler(SyncSettings(enabled=True, run_on_startup=True))

    scheduler.start()

    assert backend.add_job.call_args.kwargs["next_run_time"] is not None


def test_run_once_skips_when_sync_in_progress() -> None:
    scheduler, sync, _ = _scheduler(SyncSettings(enabled=True))
    sync.sync_all.side_effect = ConflictError("Sync already in progress")

    scheduler.run_once()

    sync.sync_all.assert_called_once_with(force=True)


def test_shutdown_only_when_running() -> None:
    scheduler, _, backend = _scheduler(SyncSettings(enabled=True))
    scheduler.shutdown()
    backend.shutdown.assert_not_called()

    backend.running = True
    scheduler.shutdown()
    backend.shutdown.assert_called_once_with(wait=False)
