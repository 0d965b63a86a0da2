"""Client access policies."""
from __future__ import annotations

from abc import ABC, abstractmethod

from holistic_money.core.config import AuthSettings
from holistic_money.core.logger import get_logger
from holistic_money.core.security import AuthenticatedUser, SecurityProvider
from holistic_money.db.store import RelationalStore

from .users_service import UserService

LOGGER = get_logger(__name__)


class AccessPolicy(ABC):
    """Decides whether an authenticated user may read a client's data."""

    @abstractmethod
    def can_access(self, user: AuthenticatedUser, client_name: str) -> bool:
        raise NotImplementedError


class AllowAllPolicy(AccessPolicy):
    """Every authenticated user may read every client. For development."""

    def can_access(self, user: AuthenticatedUser, client_name: str) -> bool:
        return True


class GrantTablePolicy(AccessPolicy):
    """Admins see everything; other users need a ``user_clients`` grant."""

    def __init__(self, users: UserService) -> None:
        self._users = users

    def can_access(self, user: AuthenticatedUser, client_name: str) -> bool:
        if user.is_admin:
            return True
        return self._users.has_client_access(user.email, client_name)


def build_access_policy(
    settings: AuthSettings, store: RelationalStore, users: UserService | None = None
) -> AccessPolicy:
    """Pick the policy named by ``CLIENT_ACCESS_POLICY`` (``allow_all`` or ``grant_table``).

    Unknown names fall back to the grant table.
    """

    name = settings.client_access_policy
    if name == "allow_all":
        return AllowAllPolicy()
    if name != "grant_table":
        LOGGER.warning("Unknown client access policy %r, using grant_table", name)
    return GrantTablePolicy(users or UserService(store, SecurityProvider(settings)))


__all__ = ["AccessPolicy", "AllowAllPolicy", "GrantTablePolicy", "build_access_policy"]
