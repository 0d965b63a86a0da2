"""HTTP middleware for the reporting API."""

from .auth import BearerTokenMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = ["BearerTokenMiddleware", "SecurityHeadersMiddleware"]
