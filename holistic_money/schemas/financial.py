"""Schemas for the aggregated P&L report."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class FinancialLine(BaseModel):
    """One account-hierarchy group with its summed amounts and newest comment."""

    model_config = ConfigDict(populate_by_name=True)

    entry_id: str | None = None
    ordering_id: str | None = None
    parent_account: str | None = None
    sub_account: str | None = None
    child_account: str | None = None
    actual: Decimal = Decimal("0")
    budget_amount: Decimal = Decimal("0")
    comment_text: str | None = None
    comment_by: str | None = None
    comment_date: datetime | None = None
    txn_date: date | datetime | str | None = Field(default=None, alias="txnDate")

    @field_serializer("actual", "budget_amount")
    def _serialize_amount(self, value: Decimal) -> float:
        return float(value)


class FinancialReport(BaseModel):
    """Payload returned by ``GET /api/financial-data``."""

    model_config = ConfigDict(populate_by_name=True)

    data: list[FinancialLine]
    total_actual: Decimal = Field(default=Decimal("0"), alias="totalActual")
    total_budget: Decimal = Field(default=Decimal("0"), alias="totalBudget")

    @field_serializer("total_actual", "total_budget")
    def _serialize_total(self, value: Decimal) -> float:
        return float(value)
