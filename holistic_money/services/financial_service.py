"""P&L report: analytics rows grouped by account with the latest comment attached."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from google.api_core.exceptions import GoogleAPIError

from holistic_money.analytics import AnalyticsStore
from holistic_money.core.config import BigQuerySettings
from holistic_money.core.errors import (
    HolisticMoneyError,
    InternalError,
    ServiceUnavailableError,
    require_fields,
)
from holistic_money.core.logger import get_logger, timeit
from holistic_money.db.store import RelationalStore
from holistic_money.models import Client
from holistic_money.schemas import FinancialLine, FinancialReport

from .base import StoreBackedService
from .clients_service import ClientsService
from .comments_service import CommentsService

LOGGER = get_logger(__name__)

_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")

REPORT_COLUMNS = (
    "entry_id",
    "ordering_id",
    "txnDate",
    "parent_account",
    "sub_account",
    "child_account",
    "actual",
    "budget_amount",
)


def parse_month(month: str | None) -> str | None:
    """Return the ``YYYY-MM`` prefix for a month filter, or ``None`` when unusable.

    >>> parse_month("2024-3")
    '2024-03'
    >>> parse_month("2024-13") is None
    True
    """

    if not month:
        return None
    match = _MONTH.match(month.strip())
    if match is None:
        return None
    year, number = match.group(1), int(match.group(2))
    if not 1 <= number <= 12:
        return None
    return f"{year}-{number:02d}"


def build_report_query(table: str, month_prefix: str | None) -> str:
    where = (
        "\nWHERE STARTS_WITH(CAST(txnDate AS STRING), @month_prefix)" if month_prefix else ""
    )
    return (
        f"SELECT {', '.join(REPORT_COLUMNS)}\nFROM {table}{where}\n"
        "ORDER BY ordering_id, txnDate, parent_account"
    )


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _amount(value: Any) -> Decimal:
    return StoreBackedService._to_decimal(value)


@dataclass
class _Group:
    entry_id: str | None
    ordering_id: str | None
    parent_account: str | None
    sub_account: str | None
    child_account: str | None
    txn_date: Any
    actual: Decimal = Decimal(0)
    budget_amount: Decimal = Decimal(0)
    entry_ids: list[str] = field(default_factory=list)


def _newest_comment(
    entry_ids: Iterable[str], comments: Mapping[str, Mapping[str, Any]]
) -> Mapping[str, Any] | None:
    newest: Mapping[str, Any] | None = None
    for entry_id in entry_ids:
        comment = comments.get(entry_id)
        if comment is None:
            continue
        if newest is None or comment["updated_at"] > newest["updated_at"]:
            newest = comment
    return newest


def aggregate_lines(
    rows: Iterable[Mapping[str, Any]],
    comments: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[FinancialLine]:
    """Group rows by ``(parent, sub, child)`` account and sum their amounts.

    The first ``entry_id``, ``ordering_id`` and ``txnDate`` seen represent the
    group; its comment is the newest among all of the group's entries.
    """

    comments = comments or {}
    groups: dict[tuple[str, str, str], _Group] = {}
    for row in rows:
        key = (
            _text(row.get("parent_account")) or "",
            _text(row.get("sub_account")) or "",
            _text(row.get("child_account")) or "",
        )
        group = groups.get(key)
        if group is None:
            group = groups[key] = _Group(
                entry_id=_text(row.get("entry_id")),
                ordering_id=_text(row.get("ordering_id")),
                parent_account=_text(row.get("parent_account")),
                sub_account=_text(row.get("sub_account")),
                child_account=_text(row.get("child_account")),
                txn_date=row.get("txnDate"),
            )
        group.actual += _amount(row.get("actual"))
        group.budget_amount += _amount(row.get("budget_amount"))
        if row.get("entry_id") is not None:
            group.entry_ids.append(str(row["entry_id"]))

    lines = []
    for group in groups.values():
        comment = _newest_comment(group.entry_ids, comments)
        lines.append(
            FinancialLine(
                entry_id=group.entry_id,
                ordering_id=group.ordering_id,
                parent_account=group.parent_account,
                sub_account=group.sub_account,
                child_account=group.child_account,
                actual=group.actual,
                budget_amount=group.budget_amount,
                comment_text=comment["comment_text"] if comment else None,
                comment_by=comment["created_by"] if comment else None,
                comment_date=comment["updated_at"] if comment else None,
                txnDate=group.txn_date,
            )
        )
    return lines


def sort_lines(lines: Sequence[FinancialLine]) -> list[FinancialLine]:
    return sorted(
        lines,
        key=lambda line: (
            line.ordering_id or "",
            line.parent_account or "",
            line.sub_account or "",
            line.child_account or "",
        ),
    )


def build_report(
    rows: Iterable[Mapping[str, Any]],
    comments: Mapping[str, Mapping[str, Any]] | None = None,
) -> FinancialReport:
    lines = sort_lines(aggregate_lines(rows, comments))
    return FinancialReport(
        data=lines,
        totalActual=sum((line.actual for line in lines), Decimal(0)),
        totalBudget=sum((line.budget_amount for line in lines), Decimal(0)),
    )


class FinancialReportService(StoreBackedService):
    """Builds the monthly P&L view for one client."""

    def __init__(
        self,
        store: RelationalStore,
        analytics: AnalyticsStore,
        settings: BigQuerySettings,
        comments: CommentsService | None = None,
    ) -> None:
        super().__init__(store)
        self._analytics = analytics
        self._settings = settings
        self._clients = ClientsService(store)
        self._comments = comments or CommentsService(store)

    def get_report(self, client_name: str | None, month: str | None = None) -> FinancialReport:
        require_fields(client=client_name)
        client = self._resolve_client(client_name)

        month_prefix = parse_month(month)
        if month and month_prefix is None:
            LOGGER.warning("Ignoring invalid month filter %r", month)

        rows = self._fetch_rows(client, month_prefix)
        comments: Mapping[str, Mapping[str, Any]] = {}
        if rows and self._store.is_available():
            comments = self._fetch_comments(client, rows)
        return build_report(rows, comments)

    def _resolve_client(self, client_name: str) -> Client:
        if not self._store.is_available():
            raise ServiceUnavailableError(
                "Database connection is not available", error="Client lookup failed"
            )
        return self._clients.get_client_by_name(client_name)

    def _fetch_rows(self, client: Client, month_prefix: str | None) -> list[dict[str, Any]]:
        params = {"month_prefix": month_prefix} if month_prefix else {}
        try:
            sql = build_report_query(
                self._analytics.quoted(client.bigquery_dataset, self._settings.pl_view_table),
                month_prefix,
            )
            label = f"financial query {client.client_name}"
            with timeit(label, logger=LOGGER, unit="rows") as timer:
                rows = self._analytics.query(sql, params)
                timer.set_total(len(rows))
        except (GoogleAPIError, ValueError) as exc:
            LOGGER.error("Financial query for %s failed: %s", client.client_name, exc)
            raise InternalError("Error fetching financial data", error=str(exc)) from exc
        return rows

    def _fetch_comments(
        self, client: Client, rows: Sequence[Mapping[str, Any]]
    ) -> Mapping[str, Mapping[str, Any]]:
        entry_ids = [str(row["entry_id"]) for row in rows if row.get("entry_id") is not None]
        try:
            return self._comments.latest_for_entries(client.comments_table_name, entry_ids)
        except (HolisticMoneyError, ValueError) as exc:
            LOGGER.warning("Serving report without comments for %s: %s", client.client_name, exc)
            return {}


__all__ = [
    "FinancialReportService",
    "aggregate_lines",
    "build_report",
    "build_report_query",
    "parse_month",
    "sort_lines",
]
