"""Database engine factories."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from holistic_money.core.config import DatabaseSettings, get_settings
from holistic_money.core.logger import get_logger

LOGGER = get_logger(__name__)


def create_postgres_engine(database: DatabaseSettings | None = None, **kwargs) -> Engine:
    """Create the pooled PostgreSQL engine (at least 1, at most ``pool_max`` connections)."""

    settings = get_settings()
    database = database or settings.database

    options = dict(kwargs)
    options.setdefault("echo", settings.sqlalchemy_echo)
    options.setdefault("pool_size", database.pool_min)
    options.setdefault("max_overflow", max(0, database.pool_max - database.pool_min))
    options.setdefault("pool_pre_ping", True)
    options.setdefault("pool_recycle", 1800)
    options.setdefault("connect_args", database.connect_args)

    LOGGER.debug(
        "Creating SQLAlchemy engine",
        extra={
            "url": database.masked_url,
            "pool_size": options["pool_size"],
            "max_overflow": options["max_overflow"],
        },
    )
    return create_engine(database.sqlalchemy_url, future=True, **options)
