"""Shared fixtures: an in-memory relational store and a fake BigQuery."""
from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Callable, Iterable, Mapping

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import BadRequest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from holistic_money.core.config import AuthSettings, BigQuerySettings
from holistic_money.core.security import AuthenticatedUser, SecurityProvider, get_security_provider
from holistic_money.db import RelationalStore, init_user_management
from holistic_money.main import app
from holistic_money.routers.dependencies import (
    get_access_policy,
    get_analytics,
    get_store,
    get_sync_service,
)
from holistic_money.services import AllowAllPolicy, ClientsService, CommentSyncService

ADMIN_EMAIL = "admin@holistic-money.com"
ADMIN_PASSWORD = "HolisticMoney2024!"


class FakeAnalyticsStore:
    """In-memory stand-in for :class:`holistic_money.analytics.AnalyticsStore`."""

    def __init__(self, project_id: str = "test-project") -> None:
        self.project_id = project_id
        self.tables: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.views: dict[tuple[str, str], str] = {}
        self.datasets: set[str] = set()
        self.pl_rows: dict[str, list[dict[str, Any]]] = {}
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.fail_load_for: set[str] = set()
        self.fail_view = False
        self.drop_rows_on_load = 0

    def quoted(self, dataset: str, table: str) -> str:
        return f"`{self.project_id}.{dataset}.{table}`"

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        params = dict(params or {})
        self.queries.append((sql, params))
        dataset = sql.split(f"`{self.project_id}.", 1)[1].split(".", 1)[0]
        rows = self.pl_rows.get(dataset, [])
        prefix = params.get("month_prefix")
        if prefix:
            rows = [row for row in rows if str(row["txnDate"]).startswith(prefix)]
        return [dict(row) for row in rows]

    def dataset_exists(self, dataset: str) -> bool:
        return dataset in self.datasets

    def table_exists(self, dataset: str, table: str) -> bool:
        return (dataset, table) in self.tables

    def create_table(self, dataset: str, table: str, schema: Any = None) -> None:
        self.tables[(dataset, table)] = []

    def load_rows(
        self, dataset: str, table: str, rows: Iterable[Mapping[str, Any]], schema: Any = None
    ) -> int:
        if dataset in self.fail_load_for:
            raise RuntimeError(f"load failed for {dataset}")
        payload = [dict(row) for row in rows]
        stored = payload[self.drop_rows_on_load:] if self.drop_rows_on_load else payload
        self.tables[(dataset, table)].extend(stored)
        return len(payload)

    def count_rows(self, dataset: str, table: str) -> int:
        return len(self.tables[(dataset, table)])

    def replace_table(self, dataset: str, source: str, destination: str) -> None:
        self.tables[(dataset, destination)] = list(self.tables[(dataset, source)])

    def delete_table(self, dataset: str, table: str) -> None:
        self.tables.pop((dataset, table), None)

    def list_tables(self, dataset: str, prefix: str = "") -> list[str]:
        return [name for ds, name in self.tables if ds == dataset and name.startswith(prefix)]

    def create_or_replace_view(self, dataset: str, view: str, select_sql: str) -> None:
        if self.fail_view:
            raise BadRequest("view failed")
        self.views[(dataset, view)] = select_sql


@pytest.fixture()
def auth_settings() -> AuthSettings:
    return AuthSettings(
        secret_key="test-secret",
        algorithm="HS256",
        access_token_expire_minutes=60,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        bcrypt_rounds=4,
    )


@pytest.fixture()
def security(auth_settings: AuthSettings) -> SecurityProvider:
    return SecurityProvider(auth_settings)


@pytest.fixture()
def bigquery_settings() -> BigQuerySettings:
    return BigQuerySettings(project_id="test-project")


@pytest.fixture()
def store(auth_settings: AuthSettings, security: SecurityProvider) -> Iterator[RelationalStore]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    relational = RelationalStore(engine, reconnect_delay=0)
    assert relational.probe()
    assert init_user_management(relational, auth_settings, security)
    yield relational
    engine.dispose()


@pytest.fixture()
def analytics() -> FakeAnalyticsStore:
    return FakeAnalyticsStore()


@pytest.fixture()
def clients_service(store: RelationalStore) -> ClientsService:
    return ClientsService(store)


@pytest.fixture()
def sync_service(
    store: RelationalStore, analytics: FakeAnalyticsStore, bigquery_settings: BigQuerySettings
) -> CommentSyncService:
    ticks = iter(range(1_700_000_000, 1_800_000_000))
    return CommentSyncService(store, analytics, bigquery_settings, clock=lambda: next(ticks))


@pytest.fixture()
def api(
    store: RelationalStore, analytics: FakeAnalyticsStore, sync_service: CommentSyncService
) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_analytics] = lambda: analytics
    app.dependency_overrides[get_sync_service] = lambda: sync_service
    app.dependency_overrides[get_access_policy] = AllowAllPolicy
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _bearer(provider: SecurityProvider, role: str, email: str) -> dict[str, str]:
    token = provider.create_access_token(AuthenticatedUser(email=email, role=role))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_headers() -> Callable[..., dict[str, str]]:
    """Build ``Authorization`` headers signed like the running app signs them."""

    def _make(
        role: str = "admin",
        email: str = ADMIN_EMAIL,
        provider: SecurityProvider | None = None,
    ) -> dict[str, str]:
        return _bearer(provider or get_security_provider(), role, email)

    return _make


@pytest.fixture()
def admin_headers(make_headers) -> dict[str, str]:
    return make_headers("admin")


@pytest.fixture()
def user_headers(make_headers) -> dict[str, str]:
    return make_headers("user", email="analyst@example.com")
