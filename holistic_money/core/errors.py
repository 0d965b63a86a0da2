"""Application errors and their HTTP rendering."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .logger import get_logger

LOGGER = get_logger(__name__)


class HolisticMoneyError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, error: str | None = None) -> None:
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"message": self.message}
        if self.error:
            payload["error"] = self.error
        return payload


class BadRequestError(HolisticMoneyError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required fields"


class AuthenticationRequiredError(HolisticMoneyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class PermissionDeniedError(HolisticMoneyError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(HolisticMoneyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(HolisticMoneyError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class ServiceUnavailableError(HolisticMoneyError):
    """Raised when the relational store is down for an operation that cannot degrade."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


class InternalError(HolisticMoneyError):
    pass


def require_fields(**fields: object) -> None:
    """Raise ``BadRequestError`` naming every empty field."""

    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise BadRequestError(error=f"Missing: {', '.join(missing)}")


async def _handle_app_error(request: Request, exc: HolisticMoneyError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "error": problems},
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error", "error": str(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Render application errors as ``{"message", "error"}`` JSON bodies."""

    app.add_exception_handler(HolisticMoneyError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)


__all__ = [
    "AuthenticationRequiredError",
    "BadRequestError",
    "ConflictError",
    "HolisticMoneyError",
    "InternalError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServiceUnavailableError",
    "register_error_handlers",
    "require_fields",
]
