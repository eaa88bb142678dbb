import asyncio
import random
import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from native_histograms.api.deps import get_metrics, get_settings
from native_histograms.core.config import Settings
from native_histograms.core.metrics import REQUEST_DURATION_NAME, RESPONSE_SIZE_NAME, MetricsRegistry

router = APIRouter(tags=["demo"])

ROOT_TEXT = f"""Prometheus Native Histogram Demo

Endpoints:
- /api - Sample API endpoint that generates metrics
- /metrics - Prometheus metrics endpoint
- /histograms - JSON view of the native histograms
- /health - Health check endpoint

Native histograms are enabled for:
- {REQUEST_DURATION_NAME}
- {RESPONSE_SIZE_NAME}
"""


@router.get("/", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
def root() -> str:
    return ROOT_TEXT


@router.get("/api", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
async def simulated_work(
    settings: Settings = Depends(get_settings),
    metrics: MetricsRegistry = Depends(get_metrics),
) -> str:
    start = time.perf_counter()
    delay = random.uniform(settings.min_request_duration_seconds, settings.max_request_duration_seconds)
    await asyncio.sleep(delay)
    metrics.record(metrics.request_duration, time.perf_counter() - start)

    size = random.randint(settings.min_response_size, settings.max_response_size)
    metrics.record(metrics.response_size, size)
    return "OK"
