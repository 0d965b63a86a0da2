"""Check PostgreSQL and BigQuery connectivity with the configured settings."""
from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import text

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from holistic_money.analytics import create_bigquery_client  # noqa: E402
from holistic_money.core.config import get_settings  # noqa: E402
from holistic_money.core.credentials import setup_credential_files  # noqa: E402
from holistic_money.db.engine import create_postgres_engine  # noqa: E402

settings = get_settings()


def check_postgres() -> bool:
    engine = create_postgres_engine(settings.database)
    try:
        with engine.connect() as conn:
            version = conn.execute(text("SELECT version()")).scalar()
            db = conn.execute(text("SELECT current_database()")).scalar()
    except Exception as exc:
        print(f"❌ PostgreSQL connection failed: {exc}")
        return False
    finally:
        engine.dispose()
    print(f"✅ Connected to {db} ({version}) via {settings.database.driver}")
    print(f"Connection details: {settings.database.masked_url}")
    return True


def check_bigquery() -> bool:
    try:
        client = create_bigquery_client(settings.bigquery)
        datasets = [item.dataset_id for item in client.list_datasets()]
    except Exception as exc:
        print(f"❌ BigQuery connection failed: {exc}")
        return False
    print(f"✅ Connected to BigQuery project {client.project} ({len(datasets)} datasets)")
    return True


def main() -> None:
    setup_credential_files(settings)
    results = [check_postgres(), check_bigquery()]
    sys.exit(0 if all(results) else 1)


if __name__ == "__main__":
    main()
