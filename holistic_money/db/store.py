"""Health-checked handle on the relational store."""
from __future__ import annotations

import time
from contextlib import contextmanager
from functools import lru_cache
from threading import Lock
from typing import Callable, Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from holistic_money.core.config import get_settings
from holistic_money.core.logger import get_logger

from .engine import create_postgres_engine
from .session import build_sessionmaker, session_scope

LOGGER = get_logger(__name__)


class RelationalStore:
    """Wrap the engine together with its last known connectivity.

    Handlers ask :meth:`is_available` before deciding whether to degrade. A
    failed probe is retried on demand, at most once every ``reconnect_delay``
    seconds, for as long as the process runs.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        reconnect_delay: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._factory = build_sessionmaker(engine)
        self._reconnect_delay = reconnect_delay
        self._clock = clock
        self._available = False
        self._checked_at: float | None = None
        self._lock = Lock()

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def last_known_available(self) -> bool:
        return self._available

    def probe(self) -> bool:
        """Check connectivity and write access, then record the outcome."""

        with self._lock:
            self._checked_at = self._clock()
            try:
                with self._engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                if self._available:
                    LOGGER.error("Relational store connection lost: %s", exc)
                else:
                    LOGGER.warning("Relational store unreachable: %s", exc)
                self._available = False
                return False

            try:
                with self._engine.begin() as conn:
                    conn.execute(text("CREATE TEMPORARY TABLE connection_test (id INTEGER)"))
                    conn.execute(text("INSERT INTO connection_test (id) VALUES (1)"))
                    conn.execute(text("DROP TABLE connection_test"))
            except SQLAlchemyError as exc:
                LOGGER.warning("Could not verify write access, continuing anyway: %s", exc)

            if not self._available:
                LOGGER.info("Relational store connected")
            self._available = True
            return True

    def is_available(self) -> bool:
        """Return the current availability, re-probing a failed store after the delay."""

        if self._available:
            return True
        if self._checked_at is not None and self._clock() - self._checked_at < self._reconnect_delay:
            return False
        LOGGER.info("Attempting to reconnect to the relational store")
        return self.probe()

    def mark_unavailable(self, reason: object) -> None:
        """Record a connection-level failure seen by a caller."""

        LOGGER.error("Marking relational store unavailable: %s", reason)
        with self._lock:
            self._available = False
            self._checked_at = self._clock()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""

        with session_scope(self._factory) as session:
            yield session

    def dispose(self) -> None:
        self._engine.dispose()


@lru_cache(maxsize=1)
def get_relational_store() -> RelationalStore:
    """Return the process-wide store bound to the configured PostgreSQL engine."""

    settings = get_settings()
    return RelationalStore(
        create_postgres_engine(settings.database),
        reconnect_delay=settings.database.reconnect_delay_seconds,
    )


__all__ = ["RelationalStore", "get_relational_store"]
