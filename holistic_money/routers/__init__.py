"""FastAPI routers for the reporting API."""

from .auth import router as auth_router
from .clients import router as clients_router
from .financial import router as financial_router
from .system import router as system_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "clients_router",
    "financial_router",
    "system_router",
    "users_router",
]
