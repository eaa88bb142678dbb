import socket

import pytest

from native_histograms import server
from native_histograms.core.exceptions import ListenerStartupFailure


def test_bind_listener_fails_when_port_is_taken():
    occupied = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    occupied.bind(("127.0.0.1", 0))
    occupied.listen()
    port = occupied.getsockname()[1]
    try:
        with pytest.raises(ListenerStartupFailure):
            server.bind_listener("127.0.0.1", port)
    finally:
        occupied.close()


def test_bind_listener_returns_bound_socket():
    sock = server.bind_listener("127.0.0.1", 0)
    try:
        assert sock.getsockname()[1] > 0
    finally:
        sock.close()


def test_build_server_maps_timeouts(test_settings):
    uvicorn_server = server.build_server(test_settings)

    assert uvicorn_server.config.timeout_keep_alive == test_settings.read_timeout_seconds
    assert uvicorn_server.config.timeout_graceful_shutdown == test_settings.shutdown_grace_seconds


def test_main_exits_on_startup_failure(monkeypatch):
    def failing_serve(_settings) -> None:
        raise ListenerStartupFailure("could not bind")

    monkeypatch.setattr(server, "serve", failing_serve)

    with pytest.raises(SystemExit) as exc_info:
        server.main()
    assert exc_info.value.code == 1
