"""Database helpers: engine factory, sessions, the store handle and bootstrap."""

from .bootstrap import ensure_comments_table, init_user_management
from .engine import create_postgres_engine
from .session import build_sessionmaker, session_scope
from .store import RelationalStore, get_relational_store

__all__ = [
    "RelationalStore",
    "build_sessionmaker",
    "create_postgres_engine",
    "ensure_comments_table",
    "get_relational_store",
    "init_user_management",
    "session_scope",
]
