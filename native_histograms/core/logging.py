import logging

from native_histograms.core.request_context import request_id_ctx_var

LOG_FORMAT = "%(asctime)s %(levelname)s request_id=%(request_id)s %(name)s %(message)s"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_CONFIGURED = False


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx_var.get()
        return True


def build_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    return handler


def setup_logging(level: str | int = logging.INFO) -> None:
    """Send service and uvicorn records through one request-id aware handler.

    uvicorn's own access log is limited to warnings: every request is already
    logged once as ``request_completed`` by the observability middleware.
    Safe to call multiple times.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    handler = build_handler()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
        server_logger.setLevel(logging.WARNING if name == "uvicorn.access" else level)

    _CONFIGURED = True
