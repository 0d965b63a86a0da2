#!/usr/bin/env python3
"""List clients and report whether their comment tables and datasets exist."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy import inspect

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from holistic_money.analytics import get_analytics_store  # noqa: E402
from holistic_money.core.config import get_settings  # noqa: E402
from holistic_money.core.credentials import setup_credential_files  # noqa: E402
from holistic_money.db import get_relational_store  # noqa: E402
from holistic_money.services import ClientsService  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--skip-bigquery", action="store_true", help="Only check the relational comment tables"
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = get_settings()
    setup_credential_files(settings)
    store = get_relational_store()
    if not store.probe():
        print("❌ PostgreSQL is not reachable")
        return 1

    clients = ClientsService(store).list_clients(include_inactive=True)
    if not clients:
        print("No clients registered")
        return 0

    inspector = inspect(store.engine)
    analytics = None if args.skip_bigquery else get_analytics_store()
    for client in clients:
        has_table = inspector.has_table(client.comments_table_name)
        line = (
            f"{client.client_id:>4}  {client.client_name:<30} {client.status:<8} "
            f"table {client.comments_table_name}: {'✅' if has_table else '❌'}"
        )
        if analytics is not None:
            has_dataset = analytics.dataset_exists(client.bigquery_dataset)
            line += f"  dataset {client.bigquery_dataset}: {'✅' if has_dataset else '❌'}"
            if has_dataset:
                exported = analytics.table_exists(
                    client.bigquery_dataset, settings.bigquery.comments_table
                )
                line += f"  exported comments: {'✅' if exported else '❌'}"
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
