"""Shared helpers for services that talk to the relational store."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from holistic_money.core.errors import ConflictError, InternalError, ServiceUnavailableError
from holistic_money.db.store import RelationalStore


def _is_connection_error(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class StoreBackedService:
    """Base service owning a :class:`RelationalStore` handle."""

    def __init__(self, store: RelationalStore) -> None:
        self._store = store

    @property
    def store(self) -> RelationalStore:
        return self._store

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        """Open a transactional session and translate store failures."""

        with self._translate_errors(action):
            with self._store.session() as session:
                yield session

    @contextmanager
    def _translate_errors(self, action: str) -> Iterator[None]:
        """Map connection failures to 503, integrity violations to 409, the rest to 500."""

        try:
            yield
        except IntegrityError as exc:
            raise ConflictError(f"Failed to {action}", error=str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            if _is_connection_error(exc):
                self._store.mark_unavailable(exc)
                raise ServiceUnavailableError(
                    f"Failed to {action}", error="Database connection is not available"
                ) from exc
            raise InternalError(f"Failed to {action}", error=str(exc)) from exc

    @staticmethod
    def _now() -> datetime:
        return datetime.now(tz=timezone.utc)

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        if value is None:
            return Decimal(0)
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal(0)
