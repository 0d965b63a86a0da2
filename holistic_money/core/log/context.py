"""Tag log records with the client, user or token problem they concern."""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator, Mapping

# ``extra=`` keys rendered next to the message when present on a record.
RECORD_FIELDS: tuple[str, ...] = ("client", "email", "role", "reason")

_bound: contextvars.ContextVar[Mapping[str, object]] = contextvars.ContextVar(
    "holistic_money_log_context", default={}
)


class LogContext:
    """Bind key-value pairs to every record logged inside a block.

    The sync job binds ``client=`` per tenant so interleaved scheduler and
    request logs stay attributable.
    """

    @contextmanager
    def bound(self, **values: object) -> Iterator[None]:
        merged = {**_bound.get(), **{k: v for k, v in values.items() if v is not None}}
        token = _bound.set(merged)
        try:
            yield
        finally:
            _bound.reset(token)

    def current(self) -> dict[str, object]:
        return dict(_bound.get())


class ContextFilter(logging.Filter):
    """Render bound context and known ``extra`` fields into ``record.context``."""

    def __init__(self, fields: tuple[str, ...] = RECORD_FIELDS) -> None:
        super().__init__()
        self._fields = fields

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, "context"):
            return True
        values = dict(_bound.get())
        for name in self._fields:
            value = record.__dict__.get(name)
            if value is not None:
                values.setdefault(name, value)
        record.context = "".join(f"{key}={value} " for key, value in values.items())
        return True


log_context = LogContext()
