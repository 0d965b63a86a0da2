"""Export relational comment history to each client's BigQuery dataset.

Every run re-exports the full history of every client. A tenant is loaded
into a fresh temp table, verified, and copied over ``financial_comments`` in
a single ``WRITE_TRUNCATE`` copy job, so readers never see a half-written
table. Tenants are exported independently and a failure is reported in that
tenant's result only.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Mapping

from google.api_core.exceptions import GoogleAPIError

from holistic_money.analytics import AnalyticsStore
from holistic_money.core.config import BigQuerySettings
from holistic_money.core.errors import ConflictError
from holistic_money.core.logger import get_logger, log_context, timeit
from holistic_money.db.store import RelationalStore
from holistic_money.models import Client
from holistic_money.schemas import ClientSyncResult

from .clients_service import ClientsService
from .comments_service import CommentsService

LOGGER = get_logger(__name__)

EXPORTED = "exported"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class SyncReport:
    force: bool
    started_at: datetime
    results: list[ClientSyncResult] = field(default_factory=list)

    @property
    def failed(self) -> list[ClientSyncResult]:
        return [result for result in self.results if result.status == FAILED]

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        if not self.results:
            return "No clients found to sync"
        counts = {status: 0 for status in (EXPORTED, SKIPPED, FAILED)}
        for result in self.results:
            counts[result.status] += 1
        return (
            f"Synced {len(self.results)} clients: {counts[EXPORTED]} exported, "
            f"{counts[SKIPPED]} skipped, {counts[FAILED]} failed"
        )


def _timestamp(value: Any) -> str | None:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return None if value is None else str(value)


def to_export_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Shape a relational comment row for the analytics comments schema."""

    return {
        "entry_id": row["entry_id"],
        "comment_text": row["comment_text"],
        "created_by": row.get("created_by"),
        "created_at": _timestamp(row.get("created_at")),
        "updated_at": _timestamp(row.get("updated_at")),
    }


def latest_comments_view_sql(comments_table: str) -> str:
    return (
        "SELECT * EXCEPT(version_rank) FROM (\n"
        "  SELECT *, ROW_NUMBER() OVER (\n"
        "    PARTITION BY entry_id ORDER BY updated_at DESC, created_at DESC\n"
        "  ) AS version_rank\n"
        f"  FROM {comments_table}\n"
        ")\nWHERE version_rank = 1"
    )


class CommentSyncService:
    """Run the relational-to-analytics comment export."""

    def __init__(
        self,
        store: RelationalStore,
        analytics: AnalyticsStore,
        settings: BigQuerySettings,
        *,
        comments: CommentsService | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._analytics = analytics
        self._settings = settings
        self._clients = ClientsService(store)
        self._comments = comments or CommentsService(store)
        self._clock = clock
        self._lock = Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def sync_all(self, force: bool = True) -> SyncReport:
        """Export every client. Raises ``ConflictError`` when a run is in progress."""

        if not self._lock.acquire(blocking=False):
            raise ConflictError("Sync already in progress")
        try:
            report = SyncReport(force=force, started_at=datetime.now(tz=timezone.utc))
            clients = self._clients.list_clients(include_inactive=True)
            if not clients:
                LOGGER.info("No clients found to sync")
                return report
            LOGGER.info("Syncing comments for %s clients", len(clients))
            with timeit("comment sync", logger=LOGGER, unit="clients", total=len(clients)):
                for client in clients:
                    report.results.append(self.export_client(client))
            log = LOGGER.info if report.success else LOGGER.warning
            log(report.summary())
            return report
        finally:
            self._lock.release()

    def export_client(self, client: Client) -> ClientSyncResult:
        started = time.perf_counter()
        dataset = client.bigquery_dataset
        temp_table: str | None = None
        source_rows = 0

        def _result(status: str, **values: Any) -> ClientSyncResult:
            return ClientSyncResult(
                client_name=client.client_name,
                status=status,
                source_rows=source_rows,
                duration_seconds=round(time.perf_counter() - started, 3),
                **values,
            )

        with log_context.bound(client=client.client_name):
            try:
                self._drop_stale_temp_tables(dataset)
                rows = self._comments.history(client.comments_table_name)
                source_rows = len(rows)
                if not rows:
                    LOGGER.info("No comments to sync for %s", client.client_name)
                    return _result(SKIPPED)

                temp_table = f"{self._settings.temp_table_prefix}{int(self._clock() * 1000)}"
                self._analytics.create_table(dataset, temp_table)
                self._analytics.load_rows(dataset, temp_table, (to_export_row(r) for r in rows))
                loaded = self._analytics.count_rows(dataset, temp_table)
                if loaded != source_rows:
                    LOGGER.warning(
                        "Row count mismatch for %s: source=%s, temp=%s",
                        client.client_name,
                        source_rows,
                        loaded,
                    )

                self._analytics.replace_table(dataset, temp_table, self._settings.comments_table)
                self._analytics.delete_table(dataset, temp_table)
                temp_table = None
                exported = self._analytics.count_rows(dataset, self._settings.comments_table)
                LOGGER.info(
                    "Exported %s comments for %s (%s in source)",
                    exported,
                    client.client_name,
                    source_rows,
                )
                self._refresh_latest_view(dataset)
                return _result(EXPORTED, exported_rows=exported)
            except Exception as exc:
                LOGGER.exception("Comment sync failed for %s", client.client_name)
                if temp_table is not None:
                    self._drop_quietly(dataset, temp_table)
                return _result(FAILED, error=str(exc))

    def _drop_stale_temp_tables(self, dataset: str) -> None:
        for table in self._analytics.list_tables(dataset, self._settings.temp_table_prefix):
            LOGGER.info("Dropping leftover temp table %s.%s", dataset, table)
            self._analytics.delete_table(dataset, table)

    def _refresh_latest_view(self, dataset: str) -> None:
        try:
            self._analytics.create_or_replace_view(
                dataset,
                self._settings.latest_comments_view,
                latest_comments_view_sql(
                    self._analytics.quoted(dataset, self._settings.comments_table)
                ),
            )
        except (GoogleAPIError, ValueError) as exc:
            LOGGER.warning(
                "Could not refresh %s view in %s: %s",
                self._settings.latest_comments_view,
                dataset,
                exc,
            )

    def _drop_quietly(self, dataset: str, table: str) -> None:
        try:
            self._analytics.delete_table(dataset, table)
        except (GoogleAPIError, ValueError) as exc:
            LOGGER.warning("Could not drop temp table %s.%s: %s", dataset, table, exc)


__all__ = [
    "CommentSyncService",
    "EXPORTED",
    "FAILED",
    "SKIPPED",
    "SyncReport",
    "latest_comments_view_sql",
    "to_export_row",
]
