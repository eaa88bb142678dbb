import logging
import socket
import sys

import uvicorn

from native_histograms.core.config import Settings, settings as default_settings
from native_histograms.core.exceptions import ListenerStartupFailure
from native_histograms.core.logging import setup_logging
from native_histograms.main import create_app

logger = logging.getLogger("native_histograms.server")


def bind_listener(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerStartupFailure(f"could not bind {host}:{port}: {exc}") from exc
    return sock


def build_server(settings: Settings) -> uvicorn.Server:
    config = uvicorn.Config(
        create_app(settings),
        host=settings.app_host,
        port=settings.app_port,
        timeout_keep_alive=settings.read_timeout_seconds,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        log_config=None,
        lifespan="on",
    )
    return uvicorn.Server(config)


def serve(settings: Settings) -> None:
    sock = bind_listener(settings.app_host, settings.app_port)
    server = build_server(settings)
    logger.info("server_starting address=%s:%s", settings.app_host, settings.app_port)
    logger.info("metrics_available path=/metrics api_path=/api")
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
    logger.info("server_stopped")


def main() -> None:
    setup_logging(default_settings.log_level)
    try:
        serve(default_settings)
    except ListenerStartupFailure:
        logger.exception("server_failed_to_start")
        sys.exit(1)


if __name__ == "__main__":
    main()
