"""Schemas for users, login and client grants."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: str = "user"


class UserUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    password: str | None = None
    is_active: bool | None = None


class UserOut(BaseModel):
    """User representation returned by the API; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    is_active: bool = True
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LoginUser(BaseModel):
    user_id: str | None = None
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


class TokenValidation(BaseModel):
    valid: bool = True
    email: str
    role: str


class ClientAccess(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_access: bool = Field(alias="hasAccess")


class MessageResponse(BaseModel):
    message: str
