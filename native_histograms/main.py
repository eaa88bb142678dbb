import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from native_histograms.api.v1.demo import router as demo_router
from native_histograms.api.v1.histograms import router as histograms_router
from native_histograms.core.config import Settings, settings as default_settings
from native_histograms.core.exceptions import (
    ShutdownTimeout,
    http_exception_handler,
    validation_exception_handler,
)
from native_histograms.core.logging import setup_logging
from native_histograms.core.middleware import WriteTimeoutMiddleware
from native_histograms.core.metrics import MetricsRegistry
from native_histograms.core.request_context import request_id_ctx_var
from native_histograms.tasks.sampler import build_sampler

logger = logging.getLogger("native_histograms.request")
UNMATCHED_ENDPOINT = "unmatched"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    sampler = None
    if settings.sampler_enabled:
        sampler = build_sampler(app.state.metrics, settings)
        sampler.start()
    app.state.sampler = sampler
    try:
        yield
    finally:
        if sampler is not None:
            try:
                await sampler.stop(timeout_seconds=settings.shutdown_grace_seconds)
            except ShutdownTimeout as exc:
                logging.getLogger("native_histograms.tasks").warning("sampler_shutdown_timeout %s", exc)


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ENDPOINT)


def create_app(settings: Settings | None = None, metrics: MetricsRegistry | None = None) -> FastAPI:
    settings = settings or default_settings
    metrics = metrics or MetricsRegistry(settings)

    app = FastAPI(title="Native Histogram Demo", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.metrics = metrics
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(demo_router)
    app.include_router(histograms_router)
    app.add_middleware(WriteTimeoutMiddleware, timeout_seconds=settings.write_timeout_seconds)

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        token = request_id_ctx_var.set(request_id)
        start = time.perf_counter()
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start
            metrics.requests_total.labels(endpoint=_endpoint_label(request)).inc()
            logger.exception(
                "request_failed method=%s path=%s status=500 duration_ms=%.2f",
                method,
                path,
                elapsed * 1000,
            )
            request_id_ctx_var.reset(token)
            raise

        elapsed = time.perf_counter() - start
        metrics.requests_total.labels(endpoint=_endpoint_label(request)).inc()
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed method=%s path=%s status=%s duration_ms=%.2f",
            method,
            path,
            response.status_code,
            elapsed * 1000,
        )
        request_id_ctx_var.reset(token)
        return response

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["observability"])
    def render_metrics() -> Response:
        payload, content_type = metrics.render()
        return Response(content=payload, media_type=content_type)

    return app


setup_logging(default_settings.log_level)
app = create_app()
