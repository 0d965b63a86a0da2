"""Client registry routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from holistic_money.core.logger import get_logger
from holistic_money.core.security import (
    AuthenticatedUser,
    get_authenticated_user,
    require_admin_user,
)
from holistic_money.schemas import ClientDeleted, ClientOut, ClientPayload
from holistic_money.services import ClientsService

from .dependencies import get_clients_service

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.get("", response_model=list[ClientOut])
def list_clients(
    user: AuthenticatedUser = Depends(get_authenticated_user),
    clients: ClientsService = Depends(get_clients_service),
) -> list[ClientOut]:
    return [ClientOut.model_validate(client) for client in clients.list_clients()]


@router.post("", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientPayload,
    user: AuthenticatedUser = Depends(get_authenticated_user),
    clients: ClientsService = Depends(get_clients_service),
) -> ClientOut:
    client = clients.create_client(payload.client_name, payload.bigquery_dataset, payload.status)
    LOGGER.info("Client %s created by %s", client.client_name, user.email)
    return ClientOut.model_validate(client)


@router.patch("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: int,
    payload: ClientPayload,
    user: AuthenticatedUser = Depends(get_authenticated_user),
    clients: ClientsService = Depends(get_clients_service),
) -> ClientOut:
    client = clients.update_client(
        client_id, payload.client_name, payload.bigquery_dataset, payload.status
    )
    return ClientOut.model_validate(client)


@router.delete("/{client_id}", response_model=ClientDeleted)
def delete_client(
    client_id: int,
    user: AuthenticatedUser = Depends(require_admin_user),
    clients: ClientsService = Depends(get_clients_service),
) -> ClientDeleted:
    clients.delete_client(client_id)
    return ClientDeleted(message="Client deleted successfully", client_id=client_id)
