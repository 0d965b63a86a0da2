#!/usr/bin/env python3
"""Export every client's comment history to BigQuery once and print the results."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from holistic_money.analytics import get_analytics_store  # noqa: E402
from holistic_money.core.config import get_settings  # noqa: E402
from holistic_money.core.credentials import setup_credential_files  # noqa: E402
from holistic_money.core.logger import get_logger, init_logging  # noqa: E402
from holistic_money.db import get_relational_store  # noqa: E402
from holistic_money.services import CommentSyncService  # noqa: E402

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--no-force",
        dest="force",
        action="store_false",
        help="Record the run as not forced (every run still exports the full history)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = get_settings()
    init_logging(level=settings.log_level)
    setup_credential_files(settings)

    store = get_relational_store()
    if not store.probe():
        logger.error("Cannot reach PostgreSQL at %s", settings.database.masked_url)
        return 1

    sync = CommentSyncService(store, get_analytics_store(), settings.bigquery)
    report = sync.sync_all(force=args.force)
    for result in report.results:
        detail = f"{result.source_rows} rows"
        if result.exported_rows is not None:
            detail += f", {result.exported_rows} in BigQuery"
        if result.error:
            detail += f", error: {result.error}"
        print(f"{result.status:<9} {result.client_name:<30} {detail} ({result.duration_seconds}s)")
    print(report.summary())
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
