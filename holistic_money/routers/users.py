"""User management routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from holistic_money.core.logger import get_logger
from holistic_money.core.security import (
    AuthenticatedUser,
    get_authenticated_user,
    require_admin_user,
)
from holistic_money.schemas import ClientAccess, MessageResponse, UserCreate, UserOut, UserUpdate
from holistic_money.services import UserService

from .dependencies import get_user_service

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> UserOut:
    return users.create_user(
        payload.email, payload.password, payload.first_name, payload.last_name, payload.role
    )


@router.get("", response_model=list[UserOut])
def list_users(
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> list[UserOut]:
    return users.list_users()


@router.get("/{email}", response_model=UserOut)
def get_user(
    email: str,
    user: AuthenticatedUser = Depends(get_authenticated_user),
    users: UserService = Depends(get_user_service),
) -> UserOut:
    return users.get_user_by_email(email)


@router.put("/{email}", response_model=UserOut)
def update_user(
    email: str,
    payload: UserUpdate,
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> UserOut:
    return users.update_user(email, **payload.model_dump(exclude_unset=True))


@router.delete("/{email}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    email: str,
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> Response:
    users.delete_user(email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{email}/clients/{client_name}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def assign_client(
    email: str,
    client_name: str,
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    users.assign_client(email, client_name)
    return MessageResponse(message="Client access granted")


@router.delete("/{email}/clients/{client_name}", response_model=MessageResponse)
def remove_client_access(
    email: str,
    client_name: str,
    admin: AuthenticatedUser = Depends(require_admin_user),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    users.remove_client_access(email, client_name)
    return MessageResponse(message="Client access removed")


@router.get("/{email}/clients/{client_name}/access", response_model=ClientAccess)
def check_client_access(
    email: str,
    client_name: str,
    user: AuthenticatedUser = Depends(get_authenticated_user),
    users: UserService = Depends(get_user_service),
) -> ClientAccess:
    return ClientAccess(hasAccess=users.has_client_access(email, client_name))
