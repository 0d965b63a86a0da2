"""Pydantic schemas for request and response payloads."""

from .clients import ClientDeleted, ClientOut, ClientPayload
from .comments import CommentCreate, CommentDelete, CommentOut, CommentsDeleted, CommentUpdate
from .financial import FinancialLine, FinancialReport
from .system import ClientSyncResult, HealthStatus, SyncRequest, SyncResponse
from .users import (
    ClientAccess,
    LoginRequest,
    LoginResponse,
    LoginUser,
    MessageResponse,
    TokenValidation,
    UserCreate,
    UserOut,
    UserUpdate,
)

__all__ = [
    "ClientAccess",
    "ClientDeleted",
    "ClientOut",
    "ClientPayload",
    "ClientSyncResult",
    "CommentCreate",
    "CommentDelete",
    "CommentOut",
    "CommentUpdate",
    "CommentsDeleted",
    "FinancialLine",
    "FinancialReport",
    "HealthStatus",
    "LoginRequest",
    "LoginResponse",
    "LoginUser",
    "MessageResponse",
    "SyncRequest",
    "SyncResponse",
    "TokenValidation",
    "UserCreate",
    "UserOut",
    "UserUpdate",
]
