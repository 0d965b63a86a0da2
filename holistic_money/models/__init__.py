"""Database models for clients, users and comment logs."""
from __future__ import annotations

from .base import Base
from .clients import Client
from .comments import DELETED_SENTINEL, comments_table, is_valid_table_name
from .users import Role, User, UserClient

__all__ = [
    "Base",
    "Client",
    "DELETED_SENTINEL",
    "Role",
    "User",
    "UserClient",
    "comments_table",
    "is_valid_table_name",
]
