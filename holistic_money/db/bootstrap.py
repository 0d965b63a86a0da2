"""Schema bootstrap for user management and per-client comment tables."""
from __future__ import annotations

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError

from holistic_money.core.config import AuthSettings
from holistic_money.core.logger import get_logger
from holistic_money.core.security import SecurityProvider
from holistic_money.models import Base, Client, Role, User, UserClient, comments_table

from .store import RelationalStore

LOGGER = get_logger(__name__)

DEFAULT_ROLES: tuple[tuple[str, str], ...] = (
    ("admin", "Full access, including user management"),
    ("user", "Access to assigned clients"),
)


def ensure_comments_table(store: RelationalStore, table_name: str) -> bool:
    """Create a client's comments table if it does not exist yet.

    Returns ``True`` when the table was created.
    """

    table = comments_table(table_name)
    if inspect(store.engine).has_table(table_name):
        return False
    table.create(store.engine, checkfirst=True)
    LOGGER.info("Created comments table %s", table_name)
    return True


def init_user_management(
    store: RelationalStore,
    auth: AuthSettings,
    security: SecurityProvider | None = None,
) -> bool:
    """Create user tables, seed roles and the bootstrap admin account.

    Failures are logged and reported through the return value so startup can
    continue without user management.
    """

    security = security or SecurityProvider(auth)
    LOGGER.info("Initializing user management database")
    try:
        Base.metadata.create_all(
            store.engine,
            tables=[
                Client.__table__,
                Role.__table__,
                User.__table__,
                UserClient.__table__,
            ],
        )
        with store.session() as session:
            existing_roles = set(session.scalars(select(Role.role_name)))
            for role_name, description in DEFAULT_ROLES:
                if role_name not in existing_roles:
                    session.add(Role(role_name=role_name, description=description))
            session.flush()

            admin = session.scalars(select(User).where(User.email == auth.admin_email)).first()
            if admin is None:
                LOGGER.info("Creating admin user %s", auth.admin_email)
                admin_role_id = session.scalar(select(Role.role_id).where(Role.role_name == "admin"))
                session.add(
                    User(
                        email=auth.admin_email,
                        password_hash=security.hash_password(auth.admin_password),
                        first_name="Admin",
                        last_name="User",
                        role_id=admin_role_id,
                        is_active=True,
                    )
                )
            else:
                LOGGER.info("Admin user already exists")
    except SQLAlchemyError:
        LOGGER.exception("Error in user management initialization; continuing startup")
        return False

    LOGGER.info("User management initialized successfully")
    return True


__all__ = ["DEFAULT_ROLES", "ensure_comments_table", "init_user_management"]
