from fastapi import HTTPException, Request, status

from native_histograms.core.config import Settings
from native_histograms.core.histogram import NativeHistogram
from native_histograms.core.metrics import MetricsRegistry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_metrics(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def get_histogram_or_404(name: str, request: Request) -> NativeHistogram:
    histogram = get_metrics(request).get_histogram(name)
    if histogram is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Histogram not found")
    return histogram
