"""Tenant registry model."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base

_ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class Client(Base):
    """A reporting tenant: its BigQuery dataset and per-tenant comments table."""

    __tablename__ = "clients"

    client_id: Mapped[int] = mapped_column(_ID_TYPE, primary_key=True, autoincrement=True)
    client_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    bigquery_dataset: Mapped[str] = mapped_column(String(255), nullable=False)
    comments_table_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )
