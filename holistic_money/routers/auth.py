"""Login and token validation."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from holistic_money.core.logger import get_logger
from holistic_money.core.security import AuthenticatedUser, get_authenticated_user
from holistic_money.schemas import LoginRequest, LoginResponse, TokenValidation
from holistic_money.services import UserService

from .dependencies import get_user_service

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    users: UserService = Depends(get_user_service),
) -> LoginResponse:
    """Exchange email and password for a bearer token."""

    return users.login(payload.email, payload.password)


@router.get("/validate-token", response_model=TokenValidation)
def validate_token(
    user: AuthenticatedUser = Depends(get_authenticated_user),
) -> TokenValidation:
    return TokenValidation(valid=True, email=user.email, role=user.role)
