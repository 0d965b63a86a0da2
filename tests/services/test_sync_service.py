import threading
from datetime import datetime

import pytest

from holistic_money.core.errors import ConflictError
from holistic_money.services import CommentsService
from holistic_money.services.sync_service import EXPORTED, FAILED, SKIPPED, to_export_row

COMMENTS = "financial_comments"
VIEW = "latest_financial_comments"


@pytest.fixture()
def tenants(clients_service, store):
    acme = clients_service.create_client("Acme", "acme")
    beta = clients_service.create_client("Beta", "beta")
    comments = CommentsService(store)
    comments.add("e-1", "first", "ana", "Acme")
    comments.update("e-1", "second", "Acme")
    comments.add("e-2", "other", "bob", "Acme")
    return acme, beta


def _result(report, name):
    return next(result for result in report.results if result.client_name == name)


def test_no_clients_gives_empty_report(sync_service) -> None:
    report = sync_service.sync_all()

    assert report.results == []
    assert report.success
    assert report.summary() == "No clients found to sync"


def test_exports_history_and_skips_empty_tenants(sync_service, analytics, tenants) -> None:
    report = sync_service.sync_all()

    acme = _result(report, "Acme")
    assert acme.status == EXPORTED
    assert acme.source_rows == 3
    assert acme.exported_rows == 3
    assert len(analytics.tables[("acme", COMMENTS)]) == 3
    assert ("acme", VIEW) in analytics.views
    assert _result(report, "Beta").status == SKIPPED
    assert ("beta", COMMENTS) not in analytics.tables
    assert not analytics.list_tables("acme", "financial_comments_tmp_")


def test_export_rows_match_schema(sync_service, analytics, tenants) -> None:
    sync_service.sync_all()

    row = analytics.tables[("acme", COMMENTS)][0]
    assert set(row) == {"entry_id", "comment_text", "created_by", "created_at", "updated_at"}
    assert row["updated_at"].endswith("+00:00")


def test_rerun_is_idempotent(sync_service, analytics, tenants) -> None:
    sync_service.sync_all()
    first = len(analytics.tables[("acme", COMMENTS)])

    report = sync_service.sync_all()

    assert len(analytics.tables[("acme", COMMENTS)]) == first == 3
    assert _result(report, "Acme").exported_rows == 3


def test_tenant_failure_is_isolated(sync_service, analytics, tenants, store) -> None:
    CommentsService(store).add("e-7", "beta note", "cy", "Beta")
    analytics.fail_load_for.add("acme")

    report = sync_service.sync_all()

    acme = _result(report, "Acme")
    assert acme.status == FAILED
    assert "load failed" in acme.error
    assert _result(report, "Beta").status == EXPORTED
    assert not report.success
    assert not analytics.list_tables("acme", "financial_comments_tmp_")


def test_stale_temp_tables_are_dropped(sync_service, analytics, tenants) -> None:
    analytics.tables[("acme", "financial_comments_tmp_1")] = [{"entry_id": "stale"}]

    sync_service.sync_all()

    assert ("acme", "financial_comments_tmp_1") not in analytics.tables


def test_count_mismatch_still_exports(sync_service, analytics, tenants) -> None:
    analytics.drop_rows_on_load = 1

    report = sync_service.sync_all()

    acme = _result(report, "Acme")
    assert acme.status == EXPORTED
    assert acme.source_rows == 3
    assert acme.exported_rows == 2


def test_view_failure_does_not_fail_tenant(sync_service, analytics, tenants) -> None:
    analytics.fail_view = True

    report = sync_service.sync_all()

    assert _result(report, "Acme").status == EXPORTED
    assert ("acme", VIEW) not in analytics.views


def test_concurrent_run_conflicts(sync_service, tenants, monkeypatch) -> None:
    started = threading.Event()
    release = threading.Event()
    original = sync_service.export_client

    def _slow_export(client):
        started.set()
        release.wait(timeout=5)
        return original(client)

    monkeypatch.setattr(sync_service, "export_client", _slow_export)
    worker = threading.Thread(target=sync_service.sync_all)
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert sync_service.running
        with pytest.raises(ConflictError):
            sync_service.sync_all()
    finally:
        release.set()
        worker.join(timeout=5)

    assert not sync_service.running


def test_to_export_row_handles_naive_timestamps() -> None:
    row = to_export_row(
        {
            "entry_id": "e",
            "comment_text": "t",
            "created_by": None,
            "created_at": datetime(2024, 1, 1, 12, 0),
            "updated_at": datetime(2024, 1, 1, 12, 0),
        }
    )

    assert row["created_at"] == "2024-01-01T12:00:00+00:00"
    assert row["created_by"] is None
