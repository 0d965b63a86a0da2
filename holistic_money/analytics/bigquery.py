"""Thin wrapper over the BigQuery client used by the report and sync paths."""
from __future__ import annotations

import json
import re
from functools import lru_cache
from typing import Any, Iterable, Mapping, Sequence

from google.api_core.exceptions import NotFound
from google.cloud import bigquery
from google.oauth2 import service_account

from holistic_money.core.config import BigQuerySettings, get_settings
from holistic_money.core.logger import get_logger

LOGGER = get_logger(__name__)

_NAME = re.compile(r"^[A-Za-z0-9_]{1,1024}$")
_PROJECT = re.compile(r"^[A-Za-z0-9_.:\-]{1,128}$")

COMMENTS_SCHEMA: tuple[bigquery.SchemaField, ...] = (
    bigquery.SchemaField("entry_id", "STRING"),
    bigquery.SchemaField("comment_text", "STRING"),
    bigquery.SchemaField("created_by", "STRING"),
    bigquery.SchemaField("created_at", "TIMESTAMP"),
    bigquery.SchemaField("updated_at", "TIMESTAMP"),
)


def is_valid_dataset_name(name: str | None) -> bool:
    return bool(name) and bool(_NAME.match(name))


def _parameter_type(value: Any) -> str:
    if isinstance(value, bool):
        return "BOOL"
    if isinstance(value, int):
        return "INT64"
    if isinstance(value, float):
        return "FLOAT64"
    return "STRING"


class AnalyticsStore:
    """Operations the application needs from BigQuery, addressed by dataset/table name."""

    def __init__(self, client: bigquery.Client, project_id: str | None = None) -> None:
        self._client = client
        self.project_id = project_id or client.project

    def table_id(self, dataset: str, table: str) -> str:
        """Return ``project.dataset.table`` after validating each part."""

        if not is_valid_dataset_name(dataset) or not is_valid_dataset_name(table):
            raise ValueError(f"Invalid BigQuery identifier: {dataset}.{table}")
        if not _PROJECT.match(self.project_id or ""):
            raise ValueError(f"Invalid BigQuery project id: {self.project_id!r}")
        return f"{self.project_id}.{dataset}.{table}"

    def quoted(self, dataset: str, table: str) -> str:
        return f"`{self.table_id(dataset, table)}`"

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Run ``sql`` with named scalar parameters and return rows as dicts."""

        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter(name, _parameter_type(value), value)
                for name, value in (params or {}).items()
            ]
        )
        job = self._client.query(sql, job_config=job_config)
        return [dict(row.items()) for row in job.result()]

    def dataset_exists(self, dataset: str) -> bool:
        try:
            self._client.get_dataset(f"{self.project_id}.{dataset}")
        except NotFound:
            return False
        return True

    def table_exists(self, dataset: str, table: str) -> bool:
        try:
            self._client.get_table(self.table_id(dataset, table))
        except NotFound:
            return False
        return True

    def create_table(
        self, dataset: str, table: str, schema: Sequence[bigquery.SchemaField] = COMMENTS_SCHEMA
    ) -> None:
        self._client.create_table(bigquery.Table(self.table_id(dataset, table), schema=list(schema)))

    def load_rows(
        self,
        dataset: str,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        schema: Sequence[bigquery.SchemaField] = COMMENTS_SCHEMA,
    ) -> int:
        """Batch-load JSON rows into an existing table, dropping unknown fields."""

        payload = [dict(row) for row in rows]
        job_config = bigquery.LoadJobConfig(
            schema=list(schema),
            ignore_unknown_values=True,
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )
        job = self._client.load_table_from_json(
            payload, self.table_id(dataset, table), job_config=job_config
        )
        job.result()
        return len(payload)

    def count_rows(self, dataset: str, table: str) -> int:
        rows = self.query(f"SELECT COUNT(*) AS count FROM {self.quoted(dataset, table)}")
        return int(rows[0]["count"]) if rows else 0

    def replace_table(self, dataset: str, source: str, destination: str) -> None:
        """Atomically overwrite ``destination`` with ``source`` (created when missing)."""

        job_config = bigquery.CopyJobConfig(
            write_disposition=bigquery.WriteDisposition.WRITE_TRUNCATE,
        )
        job = self._client.copy_table(
            self.table_id(dataset, source),
            self.table_id(dataset, destination),
            job_config=job_config,
        )
        job.result()

    def delete_table(self, dataset: str, table: str) -> None:
        self._client.delete_table(self.table_id(dataset, table), not_found_ok=True)

    def list_tables(self, dataset: str, prefix: str = "") -> list[str]:
        return [
            item.table_id
            for item in self._client.list_tables(f"{self.project_id}.{dataset}")
            if item.table_id.startswith(prefix)
        ]

    def create_or_replace_view(self, dataset: str, view: str, select_sql: str) -> None:
        self.query(f"CREATE OR REPLACE VIEW {self.quoted(dataset, view)} AS\n{select_sql}")


def create_bigquery_client(settings: BigQuerySettings) -> bigquery.Client:
    """Build a client from inline credentials, a key file, or default credentials."""

    project = settings.project_id or None
    if settings.credentials_content:
        LOGGER.info("Initializing BigQuery using credentials content")
        info = json.loads(settings.credentials_content)
        credentials = service_account.Credentials.from_service_account_info(info)
        return bigquery.Client(project=project or info.get("project_id"), credentials=credentials)
    if settings.credentials_path:
        LOGGER.info("Initializing BigQuery using credentials file %s", settings.credentials_path)
        return bigquery.Client.from_service_account_json(settings.credentials_path, project=project)
    LOGGER.warning("No Google credentials configured; using application default credentials")
    return bigquery.Client(project=project)


@lru_cache(maxsize=1)
def get_analytics_store() -> AnalyticsStore:
    """Return the process-wide analytics store."""

    settings = get_settings().bigquery
    return AnalyticsStore(create_bigquery_client(settings), settings.project_id or None)


__all__ = [
    "AnalyticsStore",
    "COMMENTS_SCHEMA",
    "create_bigquery_client",
    "get_analytics_store",
    "is_valid_dataset_name",
]
