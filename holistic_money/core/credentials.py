"""Materialise credentials supplied as environment variable content onto disk."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .logger import get_logger

LOGGER = get_logger(__name__)

CA_CERT_FILENAME = "ca.pem"
SERVICE_ACCOUNT_FILENAME = "service-account.json"


@dataclass(frozen=True)
class CredentialPaths:
    ca_cert_path: Path | None
    service_account_path: Path | None


def _ensure_dir(directory: Path) -> None:
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Created credentials directory at %s", directory)


def _format_service_account(content: str) -> str:
    try:
        return json.dumps(json.loads(content), indent=2)
    except json.JSONDecodeError as exc:
        LOGGER.warning("Service account content is not valid JSON, writing as-is: %s", exc)
        return content


def setup_credential_files(settings: Settings) -> CredentialPaths:
    """Write the CA certificate and service-account JSON to the credentials directory.

    Written paths are pushed back into ``settings`` (and
    ``GOOGLE_APPLICATION_CREDENTIALS``) when no explicit path was configured.
    """

    LOGGER.info("Setting up credential files from environment variables")
    directory = Path(settings.server.credentials_dir)
    _ensure_dir(directory)

    ca_path: Path | None = None
    if settings.server.ca_cert_content:
        ca_path = directory / CA_CERT_FILENAME
        ca_path.write_text(settings.server.ca_cert_content, encoding="utf-8")
        LOGGER.info("Wrote CA certificate to %s", ca_path)
        if not settings.database.ca_cert_path:
            settings.database.ca_cert_path = str(ca_path)
    else:
        LOGGER.warning("PG_CA_CERT_CONTENT not set, SSL certificate will not be written")

    sa_path: Path | None = None
    if settings.bigquery.credentials_content:
        sa_path = directory / SERVICE_ACCOUNT_FILENAME
        sa_path.write_text(
            _format_service_account(settings.bigquery.credentials_content), encoding="utf-8"
        )
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(sa_path)
        LOGGER.info("Wrote service account JSON to %s", sa_path)
        if not settings.bigquery.credentials_path:
            settings.bigquery.credentials_path = str(sa_path)
    else:
        LOGGER.warning(
            "GOOGLE_APPLICATION_CREDENTIALS_CONTENT not set, relying on configured key file"
        )

    return CredentialPaths(ca_cert_path=ca_path, service_account_path=sa_path)


__all__ = ["CredentialPaths", "setup_credential_files"]
