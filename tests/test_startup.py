"""Application startup without Google credentials."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from google.auth.exceptions import DefaultCredentialsError

import holistic_money.main as main_module
from holistic_money.core.config import get_settings
from holistic_money.core.errors import InternalError
from holistic_money.routers import dependencies
from holistic_money.routers.dependencies import _shared_sync_service, get_analytics, get_store


def _no_credentials():
    raise DefaultCredentialsError("Your default credentials were not found.")


@pytest.fixture()
def offline(monkeypatch, tmp_path, store):
    settings = get_settings()
    monkeypatch.setattr(settings.server, "credentials_dir", tmp_path)
    monkeypatch.setattr(settings.server, "ca_cert_content", None)
    monkeypatch.setattr(settings.bigquery, "credentials_content", None)
    monkeypatch.setattr(settings.bigquery, "credentials_path", None)
    monkeypatch.setattr(main_module, "get_relational_store", lambda: store)
    monkeypatch.setattr(dependencies, "get_relational_store", lambda: store)
    monkeypatch.setattr(dependencies, "get_analytics_store", _no_credentials)
    _shared_sync_service.cache_clear()
    yield settings
    _shared_sync_service.cache_clear()


def _boot(store):
    app = main_module.create_app()
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.mark.parametrize("sync_enabled", [False, True])
def test_app_starts_without_bigquery_credentials(offline, store, monkeypatch, sync_enabled) -> None:
    monkeypatch.setattr(offline.sync, "enabled", sync_enabled)
    app = _boot(store)

    with TestClient(app) as client:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "up"
        assert getattr(app.state, "sync_scheduler", None) is None


def test_missing_credentials_fail_at_request_time(offline) -> None:
    with pytest.raises(InternalError) as excinfo:
        get_analytics()

    assert excinfo.value.message == "BigQuery is not configured"
    assert "default credentials" in excinfo.value.error


def test_unreadable_key_file_is_reported(monkeypatch) -> None:
    def _bad_key():
        raise FileNotFoundError("credentials/service-account.json")

    monkeypatch.setattr(dependencies, "get_analytics_store", _bad_key)

    with pytest.raises(InternalError):
        get_analytics()
