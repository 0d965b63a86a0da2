"""Client (tenant) registry."""
from __future__ import annotations

import re

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from holistic_money.analytics import is_valid_dataset_name
from holistic_money.core.errors import BadRequestError, ConflictError, NotFoundError, require_fields
from holistic_money.core.logger import get_logger
from holistic_money.db.bootstrap import ensure_comments_table
from holistic_money.models import Client, UserClient

from .base import StoreBackedService

LOGGER = get_logger(__name__)

CLIENT_STATUSES = ("active", "inactive")


def derive_comments_table_name(client_name: str) -> str:
    """``"Austin Lifestyler"`` -> ``"austin_lifestyler_comments"``."""

    base = re.sub(r"\s+", "_", client_name.strip().lower())
    base = re.sub(r"[^a-z0-9_]", "", base)
    if not base or base[0].isdigit():
        base = f"client_{base}"
    return f"{base[:50]}_comments"


def _validate_status(status: str | None) -> str | None:
    if status is None:
        return None
    normalised = status.strip().lower()
    if normalised not in CLIENT_STATUSES:
        raise BadRequestError(
            "Invalid client status", error=f"status must be one of {', '.join(CLIENT_STATUSES)}"
        )
    return normalised


def _validate_dataset(dataset: str) -> str:
    dataset = dataset.strip()
    if not is_valid_dataset_name(dataset):
        raise BadRequestError(
            "Invalid BigQuery dataset", error="Use letters, digits and underscores only"
        )
    return dataset


class ClientsService(StoreBackedService):
    """Create, list, update and delete reporting clients."""

    def list_clients(self, *, include_inactive: bool = False) -> list[Client]:
        with self._session("fetch clients") as session:
            query = select(Client).order_by(Client.client_name)
            if not include_inactive:
                query = query.where(Client.status == "active")
            return list(session.scalars(query))

    def get_client(self, client_id: int) -> Client:
        with self._session("fetch client") as session:
            client = session.get(Client, client_id)
            if client is None:
                raise NotFoundError("Client not found")
            return client

    def get_client_by_name(self, client_name: str) -> Client:
        """Case-insensitive lookup by client name."""

        with self._session("fetch client") as session:
            return self.find_by_name(session, client_name)

    @staticmethod
    def find_by_name(session: Session, client_name: str) -> Client:
        client = session.scalars(
            select(Client).where(func.lower(Client.client_name) == client_name.strip().lower())
        ).first()
        if client is None:
            raise NotFoundError(f"Client '{client_name}' not found")
        return client

    def create_client(
        self,
        client_name: str | None,
        bigquery_dataset: str | None,
        status: str | None = None,
    ) -> Client:
        require_fields(client_name=client_name, bigquery_dataset=bigquery_dataset)
        client_name = client_name.strip()
        dataset = _validate_dataset(bigquery_dataset)
        status = _validate_status(status) or "active"
        table_name = derive_comments_table_name(client_name)

        with self._session("add client") as session:
            self._ensure_name_free(session, client_name)
            client = Client(
                client_name=client_name,
                bigquery_dataset=dataset,
                comments_table_name=table_name,
                status=status,
            )
            session.add(client)
            session.flush()
            session.refresh(client)

        LOGGER.info("Created client %s (comments table %s)", client.client_name, table_name)
        try:
            ensure_comments_table(self._store, table_name)
        except SQLAlchemyError:
            LOGGER.exception("Could not create comments table %s", table_name)
        return client

    def update_client(
        self,
        client_id: int,
        client_name: str | None,
        bigquery_dataset: str | None,
        status: str | None = None,
    ) -> Client:
        """Rename a client or point it at another dataset.

        ``comments_table_name`` is fixed at creation time so existing comment
        history stays attached to the client.
        """

        require_fields(client_name=client_name, bigquery_dataset=bigquery_dataset)
        client_name = client_name.strip()
        dataset = _validate_dataset(bigquery_dataset)
        status = _validate_status(status)

        with self._session("update client") as session:
            client = session.get(Client, client_id)
            if client is None:
                raise NotFoundError("Client not found")
            if client.client_name.lower() != client_name.lower():
                self._ensure_name_free(session, client_name)
            client.client_name = client_name
            client.bigquery_dataset = dataset
            if status is not None:
                client.status = status
            session.flush()
            session.refresh(client)
        LOGGER.info("Updated client %s", client_id)
        return client

    def delete_client(self, client_id: int) -> None:
        """Delete a client and its user grants in one transaction."""

        LOGGER.info("Attempting to delete client with ID %s", client_id)
        with self._session("delete client") as session:
            client = session.get(Client, client_id)
            if client is None:
                raise NotFoundError("Client not found")
            grants = session.execute(delete(UserClient).where(UserClient.client_id == client_id))
            session.delete(client)
        LOGGER.info("Deleted client %s and %s user grants", client_id, grants.rowcount)

    @staticmethod
    def _ensure_name_free(session: Session, client_name: str) -> None:
        clash = session.scalar(
            select(Client.client_id).where(func.lower(Client.client_name) == client_name.lower())
        )
        if clash is not None:
            raise ConflictError(f"Client '{client_name}' already exists")


__all__ = ["CLIENT_STATUSES", "ClientsService", "derive_comments_table_name"]
