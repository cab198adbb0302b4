import logging

import pytest

from medcite.config.logging import RequestIdFilter, configure_logging, request_id_var
from medcite.config.settings import AppSettings


def _record() -> logging.LogRecord:
    return logging.LogRecord("medcite", logging.INFO, __file__, 1, "msg", None, None)


def test_filter_uses_context_request_id():
    token = request_id_var.set("req-42")
    try:
        record = _record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "req-42"
    finally:
        request_id_var.reset(token)


def test_filter_defaults_to_dash():
    record = _record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"


@pytest.fixture
def isolated_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = [logging.StreamHandler()]
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_configure_logging_sets_level_and_filter_once(isolated_root, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    configure_logging(AppSettings())
    configure_logging(AppSettings())
    assert isolated_root.level == logging.DEBUG
    filters = [f for f in isolated_root.handlers[0].filters if isinstance(f, RequestIdFilter)]
    assert len(filters) == 1
