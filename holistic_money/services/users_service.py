"""User accounts, login and per-client grants."""
from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from holistic_money.core.errors import (
    AuthenticationRequiredError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    require_fields,
)
from holistic_money.core.logger import get_logger
from holistic_money.core.security import AuthenticatedUser, SecurityProvider
from holistic_money.db.store import RelationalStore
from holistic_money.models import Client, Role, User, UserClient
from holistic_money.schemas import LoginResponse, LoginUser, UserOut

from .base import StoreBackedService
from .clients_service import ClientsService

LOGGER = get_logger(__name__)


def _normalise_email(email: str) -> str:
    return email.strip().lower()


def to_user_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.user_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role_name,
        is_active=user.is_active,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserService(StoreBackedService):
    """CRUD over users plus authentication. Password hashes never leave this class."""

    def __init__(self, store: RelationalStore, security: SecurityProvider) -> None:
        super().__init__(store)
        self._security = security

    def create_user(
        self,
        email: str | None,
        password: str | None,
        first_name: str | None,
        last_name: str | None,
        role: str = "user",
    ) -> UserOut:
        require_fields(
            email=email, password=password, first_name=first_name, last_name=last_name
        )
        email = _normalise_email(email)
        with self._session("create user") as session:
            if self._find(session, email) is not None:
                raise ConflictError("User already exists")
            user = User(
                email=email,
                password_hash=self._security.hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=self._role(session, role),
                is_active=True,
            )
            session.add(user)
            session.flush()
            session.refresh(user)
            created = to_user_out(user)
        LOGGER.info("Created user %s with role %s", email, created.role)
        return created

    def list_users(self) -> list[UserOut]:
        with self._session("fetch users") as session:
            return [to_user_out(user) for user in session.scalars(select(User).order_by(User.email))]

    def get_user_by_email(self, email: str) -> UserOut:
        with self._session("fetch user") as session:
            return to_user_out(self._get(session, email))

    def update_user(
        self,
        email: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
        password: str | None = None,
        is_active: bool | None = None,
    ) -> UserOut:
        with self._session("update user") as session:
            user = self._get(session, email)
            if first_name is not None:
                user.first_name = first_name
            if last_name is not None:
                user.last_name = last_name
            if role is not None:
                user.role = self._role(session, role)
            if password:
                user.password_hash = self._security.hash_password(password)
            if is_active is not None:
                user.is_active = is_active
            session.flush()
            session.refresh(user)
            updated = to_user_out(user)
        LOGGER.info("Updated user %s", updated.email)
        return updated

    def delete_user(self, email: str) -> None:
        with self._session("delete user") as session:
            user = self._get(session, email)
            session.execute(delete(UserClient).where(UserClient.user_id == user.user_id))
            session.delete(user)
        LOGGER.info("Deleted user %s", email)

    def authenticate(self, email: str, password: str) -> AuthenticatedUser | None:
        """Return the identity for valid credentials of an active user, else ``None``."""

        with self._session("authenticate user") as session:
            user = self._find(session, _normalise_email(email))
            if user is None or not user.is_active:
                return None
            if not self._security.verify_password(password, user.password_hash):
                return None
            return AuthenticatedUser(email=user.email, role=user.role_name, user_id=user.user_id)

    def login(self, email: str | None, password: str | None) -> LoginResponse:
        require_fields(email=email, password=password)
        identity = self.authenticate(email, password)
        if identity is None:
            LOGGER.info("Failed login for %s", email)
            raise AuthenticationRequiredError("Invalid email or password")

        with self._session("record login") as session:
            user = self._get(session, identity.email)
            user.last_login = self._now()
            profile = LoginUser(
                user_id=user.user_id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                role=user.role_name,
            )
        LOGGER.info("User %s logged in", identity.email)
        return LoginResponse(token=self._security.create_access_token(identity), user=profile)

    def assign_client(self, email: str, client_name: str) -> None:
        with self._session("assign client") as session:
            user = self._get(session, email)
            client = ClientsService.find_by_name(session, client_name)
            if self._grant(session, user, client) is None:
                session.add(UserClient(user_id=user.user_id, client_id=client.client_id))
        LOGGER.info("Granted %s access to client %s", email, client_name)

    def remove_client_access(self, email: str, client_name: str) -> None:
        with self._session("remove client access") as session:
            user = self._get(session, email)
            client = ClientsService.find_by_name(session, client_name)
            grant = self._grant(session, user, client)
            if grant is not None:
                session.delete(grant)
        LOGGER.info("Removed %s access to client %s", email, client_name)

    def has_client_access(self, email: str, client_name: str) -> bool:
        with self._session("check client access") as session:
            user = self._find(session, _normalise_email(email))
            if user is None:
                return False
            if user.role_name == "admin":
                return True
            granted = session.scalar(
                select(func.count())
                .select_from(UserClient)
                .join(Client, Client.client_id == UserClient.client_id)
                .where(
                    UserClient.user_id == user.user_id,
                    func.lower(Client.client_name) == client_name.strip().lower(),
                )
            )
            return bool(granted)

    @staticmethod
    def _find(session: Session, email: str) -> User | None:
        return session.scalars(
            select(User).where(func.lower(User.email) == _normalise_email(email))
        ).first()

    def _get(self, session: Session, email: str) -> User:
        user = self._find(session, email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _role(session: Session, role_name: str) -> Role:
        role = session.scalars(select(Role).where(Role.role_name == role_name)).first()
        if role is None:
            raise BadRequestError("Invalid role", error=f"Unknown role '{role_name}'")
        return role

    @staticmethod
    def _grant(session: Session, user: User, client: Client) -> UserClient | None:
        return session.scalars(
            select(UserClient).where(
                UserClient.user_id == user.user_id, UserClient.client_id == client.client_id
            )
        ).first()


__all__ = ["UserService", "to_user_out"]
