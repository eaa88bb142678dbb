import asyncio
import logging
from typing import Any, Callable

from native_histograms.core.exceptions import timeout_response

logger = logging.getLogger("native_histograms.request")


class WriteTimeoutMiddleware:
    """Answers 504 when a request has not started its response within ``timeout_seconds``."""

    def __init__(self, app: Callable[..., Any], timeout_seconds: float) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), timeout=self.timeout_seconds)
        except TimeoutError:
            logger.warning(
                "request_timed_out path=%s timeout_seconds=%s response_started=%s",
                scope.get("path"),
                self.timeout_seconds,
                response_started,
            )
            if response_started:
                return
            await timeout_response(self.timeout_seconds)(scope, receive, send)
