"""Schemas for the client (tenant) registry."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ClientPayload(BaseModel):
    """Body accepted by the create and update endpoints.

    Fields are optional at the schema level so that missing values surface as
    the API's own 400 ``Missing required fields`` response.
    """

    client_name: str | None = None
    bigquery_dataset: str | None = None
    status: str | None = None


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_id: int
    client_name: str
    bigquery_dataset: str
    comments_table_name: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ClientDeleted(BaseModel):
    message: str
    client_id: int
