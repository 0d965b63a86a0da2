"""Duration and throughput logging for analytics queries and sync runs."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator


@dataclass
class Timer:
    """Running measurement yielded by :func:`timeit`.

    ``total`` is the number of processed units (rows, clients). Callers that
    only learn it inside the block set it with :meth:`set_total`.
    """

    label: str
    unit: str = "items"
    total: int | None = None
    started: float = field(default_factory=perf_counter)
    finished: float | None = None

    def set_total(self, total: int) -> None:
        self.total = total

    @property
    def elapsed(self) -> float:
        return (self.finished or perf_counter()) - self.started

    @property
    def rate(self) -> float | None:
        if not self.total or self.elapsed <= 0:
            return None
        return self.total / self.elapsed

    def describe(self) -> str:
        text = f"{self.label} took {self.elapsed:.2f}s"
        if self.total is None:
            return text
        text += f" ({self.total:,} {self.unit}"
        if self.rate is not None:
            text += f", {self.rate:,.0f} {self.unit}/s"
        return text + ")"


@contextmanager
def timeit(
    label: str,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
    unit: str = "items",
    total: int | None = None,
) -> Iterator[Timer]:
    """Log how long the block took; failures are logged at ERROR and re-raised."""

    log = logger or logging.getLogger("holistic_money.timing")
    timer = Timer(label=label, unit=unit, total=total)
    try:
        yield timer
    except Exception as exc:
        timer.finished = perf_counter()
        log.error("%s failed with %s", timer.describe(), type(exc).__name__)
        raise
    timer.finished = perf_counter()
    log.log(level, timer.describe())
