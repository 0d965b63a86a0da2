import logging

import pytest

from holistic_money.core.log import LoggingConfig
from holistic_money.core.log.context import ContextFilter
from holistic_money.core.logger import log_context, timeit


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture()
def captured() -> tuple[logging.Logger, _ListHandler]:
    logger = logging.getLogger("holistic_money.tests.timing")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    handler = _ListHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
    record.__dict__.update(extra)
    return record


def test_context_filter_renders_bound_values_and_known_extras() -> None:
    context_filter = ContextFilter()

    with log_context.bound(client="Acme"):
        record = _record(email="ana@example.com", database="ignored")
        context_filter.filter(record)

    assert record.context == "client=Acme email=ana@example.com "


def test_bound_context_is_reset_after_block() -> None:
    with log_context.bound(client="Acme"):
        assert log_context.current() == {"client": "Acme"}

    record = _record()
    ContextFilter().filter(record)
    assert record.context == ""


def test_timeit_logs_duration_and_total(captured) -> None:
    logger, handler = captured

    with timeit("financial query Acme", logger=logger, unit="rows") as timer:
        timer.set_total(12)

    assert len(handler.records) == 1
    message = handler.records[0].getMessage()
    assert message.startswith("financial query Acme took ")
    assert "12 rows" in message


def test_timeit_logs_failure_and_reraises(captured) -> None:
    logger, handler = captured

    with pytest.raises(RuntimeError):
        with timeit("comment sync", logger=logger, unit="clients", total=3):
            raise RuntimeError("boom")

    assert handler.records[0].levelno == logging.ERROR
    assert "failed with RuntimeError" in handler.records[0].getMessage()


def test_logging_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_DIR", "")
    monkeypatch.setenv("LOG_RETENTION_DAYS", "3")

    cfg = LoggingConfig.from_env()

    assert cfg.numeric_level == logging.DEBUG
    assert cfg.log_dir is None
    assert cfg.retention_days == 3
