"""Process-wide logging: rich console output plus a rotating file, fed through a queue.

Request handlers and the background sync thread both log through a
``QueueHandler`` so slow console or disk writes never block them.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from threading import RLock

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .timing import timeit

__all__ = [
    "LoggingConfig",
    "get_logger",
    "init_logging",
    "log_context",
    "shutdown_logging",
    "timeit",
]

LOG_FILE_NAME = "holistic_money.log"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS: tuple[str, ...] = (
    "apscheduler.executors.default",
    "apscheduler.scheduler",
    "google.auth",
    "google.cloud.bigquery",
    "urllib3.connectionpool",
)


@dataclass(frozen=True)
class LoggingConfig:
    app_name: str = "holistic_money"
    level: str | int = "INFO"
    log_dir: Path | None = Path("logs")
    retention_days: int = 14
    console: bool = True
    queue: bool = True
    quiet_loggers: tuple[str, ...] = field(default=QUIET_LOGGERS)

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Seed from ``LOG_LEVEL``, ``LOG_DIR`` and ``LOG_RETENTION_DAYS``."""

        log_dir = os.getenv("LOG_DIR", "logs")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
            retention_days=int(os.getenv("LOG_RETENTION_DAYS", "14")),
        )

    @property
    def numeric_level(self) -> int:
        if isinstance(self.level, int):
            return self.level
        return getattr(logging, str(self.level).upper(), logging.INFO)


_lock = RLock()
_config: LoggingConfig | None = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


def _console_handler(level: int) -> logging.Handler:
    install_rich_traceback(show_locals=False)
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(context)s%(message)s"))
    return handler


def _file_handler(cfg: LoggingConfig, level: int) -> logging.Handler:
    directory = Path(cfg.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / LOG_FILE_NAME,
        when="midnight",
        backupCount=cfg.retention_days,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _build_handlers(cfg: LoggingConfig) -> list[logging.Handler]:
    level = cfg.numeric_level
    handlers: list[logging.Handler] = []
    if cfg.console:
        handlers.append(_console_handler(level))
    if cfg.log_dir:
        handlers.append(_file_handler(cfg, level))
    for handler in handlers:
        handler.addFilter(_context_filter)
    return handlers


def init_logging(**overrides: object) -> LoggingConfig:
    """Configure the root logger; repeated calls with the same options are no-ops.

    Keyword arguments override fields of :class:`LoggingConfig`. Unknown
    keys are ignored and ``None`` values keep the environment default.
    """

    global _config, _listener

    base = LoggingConfig.from_env()
    known = {
        key: value
        for key, value in overrides.items()
        if key in LoggingConfig.__dataclass_fields__ and value is not None
    }
    if "log_dir" in known:
        known["log_dir"] = Path(known["log_dir"])
    cfg = replace(base, **known)

    with _lock:
        if _config == cfg:
            return cfg
        _teardown_locked()

        root = logging.getLogger()
        root.setLevel(cfg.numeric_level)
        handlers = _build_handlers(cfg)
        if cfg.queue and handlers:
            log_queue: SimpleQueue = SimpleQueue()
            queue_handler = QueueHandler(log_queue)
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            _listener.start()
        else:
            for handler in handlers:
                root.addHandler(handler)

        for name in cfg.quiet_loggers:
            logging.getLogger(name).setLevel(max(cfg.numeric_level, logging.WARNING))

        _config = cfg
        return cfg


def _teardown_locked() -> None:
    global _config, _listener
    if _listener is not None:
        _listener.stop()
    _listener = None
    _config = None
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def shutdown_logging() -> None:
    """Flush the queue listener and detach all root handlers."""

    with _lock:
        _teardown_locked()


def get_logger(name: str | None = None) -> logging.Logger:
    with _lock:
        if _config is None:
            init_logging()
        app_name = _config.app_name if _config else LoggingConfig.app_name
    return logging.getLogger(name or app_name)
