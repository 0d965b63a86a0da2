"""Opinionated SQLAlchemy session helpers."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def build_sessionmaker(engine: Engine) -> sessionmaker:
    """Return a ``sessionmaker`` bound to ``engine``."""

    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope: commit on success, roll back on error."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:  # pragma: no cover - re-raise for callers
        session.rollback()
        raise
    finally:
        session.close()
