"""Password hashing, JWT access tokens and the request-level auth dependencies."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable

import bcrypt
import jwt
from fastapi import Request
from jwt import ExpiredSignatureError, InvalidTokenError

from .config import AuthSettings, get_settings
from .errors import AuthenticationRequiredError, PermissionDeniedError
from .logger import get_logger

LOGGER = get_logger(__name__)

# bcrypt only considers the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


class AuthenticationError(Exception):
    """Raised when token validation fails."""


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Identity carried by an access token."""

    email: str
    role: str
    user_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class SecurityProvider:
    """Hash passwords and issue/verify JWT access tokens."""

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings

    @property
    def token_ttl_seconds(self) -> int:
        """Return the access token lifetime in seconds."""

        return int(self._settings.access_token_expire_minutes * 60)

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
        except ValueError:
            LOGGER.warning("Stored password hash is not a valid bcrypt hash")
            return False

    def create_access_token(self, user: AuthenticatedUser) -> str:
        """Create a signed JWT for the authenticated user."""

        now = datetime.now(tz=timezone.utc)
        expires = now + timedelta(minutes=self._settings.access_token_expire_minutes)
        payload: dict[str, object] = {
            "sub": user.email,
            "email": user.email,
            "role": user.role,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        if user.user_id is not None:
            payload["user_id"] = user.user_id
        return jwt.encode(payload, self._settings.secret_key, algorithm=self._settings.algorithm)

    def decode_token(self, token: str) -> AuthenticatedUser:
        """Decode a JWT and return the corresponding ``AuthenticatedUser``."""

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc

        email = payload.get("email") or payload.get("sub")
        role = payload.get("role")
        if not isinstance(email, str) or not isinstance(role, str):
            raise AuthenticationError("Token payload missing required claims")

        user_id = payload.get("user_id")
        return AuthenticatedUser(
            email=email,
            role=role,
            user_id=str(user_id) if user_id is not None else None,
        )


@lru_cache(maxsize=1)
def get_security_provider() -> SecurityProvider:
    """Return a cached security provider instance."""

    return SecurityProvider(get_settings().auth)


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""

    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_request_user(
    request: Request, security: SecurityProvider | None = None
) -> tuple[AuthenticatedUser | None, str | None]:
    """Return ``(user, token_error)`` for the request.

    Uses the values stored by ``BearerTokenMiddleware`` when present and
    decodes the header otherwise.
    """

    state = request.state
    if hasattr(state, "user"):
        return state.user, getattr(state, "token_error", None)

    token = bearer_token(request)
    if token is None:
        return None, None
    try:
        return (security or get_security_provider()).decode_token(token), None
    except AuthenticationError as exc:
        return None, str(exc)


def get_authenticated_user(request: Request) -> AuthenticatedUser:
    """Require a valid bearer token: 401 when missing, 403 when invalid or expired."""

    user, token_error = resolve_request_user(request)
    if token_error is not None:
        raise PermissionDeniedError("Invalid or expired token", error=token_error)
    if user is None:
        raise AuthenticationRequiredError()
    return user


def get_optional_user(request: Request) -> AuthenticatedUser | None:
    """Return the caller when a valid token was supplied, ``None`` otherwise."""

    user, _ = resolve_request_user(request)
    return user


def require_roles(*roles: str) -> Callable[..., AuthenticatedUser]:
    """Build a dependency that rejects callers whose role is not in ``roles``."""

    allowed = frozenset(roles)

    def _dependency(request: Request) -> AuthenticatedUser:
        user = get_authenticated_user(request)
        if user.role not in allowed:
            LOGGER.info("Role check failed", extra={"email": user.email, "role": user.role})
            raise PermissionDeniedError()
        return user

    return _dependency


require_admin_user = require_roles("admin")


__all__ = [
    "AuthenticatedUser",
    "AuthenticationError",
    "SecurityProvider",
    "bearer_token",
    "get_authenticated_user",
    "get_optional_user",
    "get_security_provider",
    "require_admin_user",
    "require_roles",
    "resolve_request_user",
]
