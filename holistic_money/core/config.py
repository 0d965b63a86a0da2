"""Configuration for the reporting backend, loaded from environment variables."""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_JWT_SECRET = "change-me"
_FALSE_VALUES = {"0", "false", "False", "no", ""}


def _get_env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _get_flag(name: str, default: str = "false") -> bool:
    return _get_env(name, default).strip() not in _FALSE_VALUES


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the PostgreSQL store holding clients, users and comments."""

    host: str
    port: int
    user: str
    password: str
    name: str
    driver: str = "postgresql+psycopg2"
    ssl: bool = False
    ca_cert_path: str | None = None
    connect_timeout_ms: int = 30000
    statement_timeout_ms: int = 30000
    pool_min: int = 1
    pool_max: int = 10
    reconnect_delay_seconds: float = 5.0
    application_name: str = "holistic_money_app"

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"

    @property
    def connect_args(self) -> dict[str, object]:
        """Return psycopg2 connection arguments (timeouts, SSL, application name)."""

        args: dict[str, object] = {
            "connect_timeout": max(1, self.connect_timeout_ms // 1000),
            "application_name": self.application_name,
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
        }
        if self.ca_cert_path:
            args["sslmode"] = "verify-ca"
            args["sslrootcert"] = self.ca_cert_path
        elif self.ssl:
            args["sslmode"] = "require"
        return args


@dataclass(slots=True)
class BigQuerySettings:
    """Analytics store configuration."""

    project_id: str
    credentials_path: str | None = None
    credentials_content: str | None = None
    pl_view_table: str = "pl_budget_with_comments"
    comments_table: str = "financial_comments"
    latest_comments_view: str = "latest_financial_comments"
    temp_table_prefix: str = "financial_comments_tmp_"


@dataclass(slots=True)
class AuthSettings:
    """Authentication settings loaded from environment variables."""

    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    admin_email: str
    admin_password: str
    bcrypt_rounds: int = 10
    client_access_policy: str = "allow_all"

    @property
    def uses_default_secret(self) -> bool:
        return self.secret_key == DEFAULT_JWT_SECRET


@dataclass(slots=True)
class SyncSettings:
    """Controls the PostgreSQL to BigQuery comment sync scheduler."""

    enabled: bool = False
    frequency_minutes: int = 60
    run_on_startup: bool = False


@dataclass(slots=True)
class ServerSettings:
    """HTTP server and bootstrap options."""

    port: int = 3001
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    credentials_dir: Path = field(default_factory=lambda: Path("credentials"))
    ca_cert_content: str | None = None


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    bigquery: BigQuerySettings
    auth: AuthSettings
    sync: SyncSettings
    server: ServerSettings
    log_level: str = "INFO"
    log_dir: str | None = "logs"
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        db = DatabaseSettings(
            host=_get_env("PG_HOST", "localhost"),
            port=int(_get_env("PG_PORT", "5432")),
            user=_get_env("PG_USER", "postgres"),
            password=_get_env("PG_PASSWORD", "postgres"),
            name=_get_env("PG_DATABASE", "holistic_money"),
            ssl=_get_flag("PG_SSL"),
            ca_cert_path=os.getenv("PG_CA_CERT") or None,
            connect_timeout_ms=int(_get_env("PG_CONNECTION_TIMEOUT", "30000")),
            statement_timeout_ms=int(_get_env("PG_STATEMENT_TIMEOUT", "30000")),
        )
        bigquery = BigQuerySettings(
            project_id=_get_env("PROJECT_ID", ""),
            credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or None,
            credentials_content=os.getenv("GOOGLE_APPLICATION_CREDENTIALS_CONTENT") or None,
        )
        auth = AuthSettings(
            secret_key=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
            algorithm=_get_env("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(_get_env("JWT_EXPIRE_MINUTES", "1440")),
            admin_email=_get_env("ADMIN_EMAIL", "admin@holistic-money.com"),
            admin_password=_get_env("ADMIN_PASSWORD", "HolisticMoney2024!"),
            client_access_policy=_get_env("CLIENT_ACCESS_POLICY", "allow_all").strip().lower(),
        )
        sync = SyncSettings(
            enabled=_get_flag("SYNC_ENABLED"),
            frequency_minutes=int(_get_env("SYNC_FREQUENCY", "60")),
            run_on_startup=_get_flag("SYNC_ON_STARTUP"),
        )
        server = ServerSettings(
            port=int(_get_env("PORT", "3001")),
            cors_origins=_split_csv(_get_env("CORS_ORIGIN", "http://localhost:3000")),
            credentials_dir=Path(_get_env("CREDENTIALS_DIR", "credentials")),
            ca_cert_content=os.getenv("PG_CA_CERT_CONTENT") or None,
        )
        return cls(
            database=db,
            bigquery=bigquery,
            auth=auth,
            sync=sync,
            server=server,
            log_level=_get_env("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs") or None,
            sqlalchemy_echo=_get_flag("SQLALCHEMY_ECHO", "0"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .logger import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "sqlalchemy_echo": settings.sqlalchemy_echo,
            "database": {
                "host": settings.database.host,
                "port": settings.database.port,
                "name": settings.database.name,
                "user": settings.database.user,
                "ssl": settings.database.ssl,
            },
            "bigquery": {"project_id": settings.bigquery.project_id},
            "auth": {
                "admin_email": settings.auth.admin_email,
                "token_ttl": settings.auth.access_token_expire_minutes,
                "client_access_policy": settings.auth.client_access_policy,
            },
            "sync": {
                "enabled": settings.sync.enabled,
                "frequency_minutes": settings.sync.frequency_minutes,
                "run_on_startup": settings.sync.run_on_startup,
            },
        },
    )
    if settings.auth.uses_default_secret:
        logger.warning("JWT_SECRET is not set; falling back to the insecure default secret")
    return settings
