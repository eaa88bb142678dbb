import logging

import pytest

from native_histograms.core import logging as service_logging
from native_histograms.core.logging import SERVER_LOGGERS, RequestIdFilter, setup_logging
from native_histograms.core.request_context import request_id_ctx_var


@pytest.fixture()
def unconfigured_logging(monkeypatch):
    monkeypatch.setattr(service_logging, "_CONFIGURED", False)
    loggers = [logging.getLogger(), *(logging.getLogger(name) for name in SERVER_LOGGERS)]
    saved = [(logger, logger.level) for logger in loggers]
    for logger in loggers:
        monkeypatch.setattr(logger, "handlers", [])
        monkeypatch.setattr(logger, "propagate", logger.propagate)
    yield
    for logger, level in saved:
        logger.setLevel(level)


def _request_id_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        handler
        for handler in logger.handlers
        if any(isinstance(item, RequestIdFilter) for item in handler.filters)
    ]


def test_setup_logging_routes_server_loggers_through_request_id_handler(unconfigured_logging):
    setup_logging("DEBUG")

    root_handlers = _request_id_handlers(logging.getLogger())
    assert len(root_handlers) == 1
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        assert server_logger.handlers == root_handlers
        assert server_logger.propagate is False
    assert logging.getLogger("uvicorn.error").level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_setup_logging_is_idempotent(unconfigured_logging):
    setup_logging()
    setup_logging()

    assert len(_request_id_handlers(logging.getLogger())) == 1


def test_request_id_filter_stamps_current_request_id():
    record = logging.LogRecord("native_histograms", logging.INFO, __file__, 1, "hello", None, None)
    token = request_id_ctx_var.set("req-42")
    try:
        assert RequestIdFilter().filter(record) is True
    finally:
        request_id_ctx_var.reset(token)

    assert record.request_id == "req-42"
