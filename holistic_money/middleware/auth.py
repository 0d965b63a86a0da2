"""Middleware that decodes bearer tokens into ``request.state``."""
from __future__ import annotations

from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from holistic_money.core.logger import get_logger
from holistic_money.core.security import (
    AuthenticatedUser,
    AuthenticationError,
    SecurityProvider,
    bearer_token,
)

LOGGER = get_logger(__name__)


class BearerTokenMiddleware(BaseHTTPMiddleware):
    """Attach the decoded identity to every request.

    The middleware never rejects a request itself: route dependencies decide
    whether a missing (401) or invalid (403) token matters for the endpoint.
    """

    def __init__(self, app, security_provider: SecurityProvider) -> None:
        super().__init__(app)
        self._security_provider = security_provider

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        token = bearer_token(request)
        user: AuthenticatedUser | None = None
        token_error: str | None = None

        if token:
            try:
                user = self._security_provider.decode_token(token)
            except AuthenticationError as exc:
                LOGGER.info("Failed to decode access token", extra={"reason": str(exc)})
                token_error = str(exc)

        request.state.user = user
        request.state.token_error = token_error
        return await call_next(request)


__all__ = ["BearerTokenMiddleware"]
