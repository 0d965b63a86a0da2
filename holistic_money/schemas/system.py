"""Schemas for health and sync endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "up"
    postgres_connected: bool = Field(alias="postgresConnected")
    timestamp: datetime


class SyncRequest(BaseModel):
    force: bool = True


class ClientSyncResult(BaseModel):
    client_name: str
    status: str
    source_rows: int = 0
    exported_rows: int | None = None
    duration_seconds: float = 0.0
    error: str | None = None


class SyncResponse(BaseModel):
    success: bool
    message: str
    force: bool
    timestamp: datetime
    results: list[ClientSyncResult] = []
    error: str | None = None
