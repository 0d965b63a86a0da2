"""BigQuery access for P&L reads and comment exports."""

from .bigquery import (
    COMMENTS_SCHEMA,
    AnalyticsStore,
    create_bigquery_client,
    get_analytics_store,
    is_valid_dataset_name,
)

__all__ = [
    "AnalyticsStore",
    "COMMENTS_SCHEMA",
    "create_bigquery_client",
    "get_analytics_store",
    "is_valid_dataset_name",
]
