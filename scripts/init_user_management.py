#!/usr/bin/env python3
"""Create the user management tables, default roles and the bootstrap admin."""
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from holistic_money.core.config import get_settings  # noqa: E402
from holistic_money.core.credentials import setup_credential_files  # noqa: E402
from holistic_money.core.logger import get_logger, init_logging  # noqa: E402
from holistic_money.db import get_relational_store, init_user_management  # noqa: E402

logger = get_logger(__name__)


def main() -> int:
    settings = get_settings()
    init_logging(level=settings.log_level)
    setup_credential_files(settings)

    store = get_relational_store()
    if not store.probe():
        logger.error("Cannot reach PostgreSQL at %s", settings.database.masked_url)
        return 1
    if not init_user_management(store, settings.auth):
        return 1
    logger.info("User management ready; admin account is %s", settings.auth.admin_email)
    return 0


if __name__ == "__main__":
    sys.exit(main())
