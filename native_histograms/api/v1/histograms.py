from fastapi import APIRouter, Depends, status

from native_histograms.api.deps import get_histogram_or_404, get_metrics
from native_histograms.core.histogram import NativeHistogram
from native_histograms.core.metrics import MetricsRegistry
from native_histograms.schemas.histogram import HistogramResponse

router = APIRouter(prefix="/histograms", tags=["histograms"])


def _to_response(histogram: NativeHistogram) -> HistogramResponse:
    view = histogram.snapshot()
    return HistogramResponse.from_view(view, reset_requested=histogram.reset_requested)


@router.get("", response_model=list[HistogramResponse], status_code=status.HTTP_200_OK)
def list_histograms(metrics: MetricsRegistry = Depends(get_metrics)) -> list[HistogramResponse]:
    return [_to_response(histogram) for histogram in metrics.histograms.values()]


@router.get("/{name}", response_model=HistogramResponse, status_code=status.HTTP_200_OK)
def get_histogram(histogram: NativeHistogram = Depends(get_histogram_or_404)) -> HistogramResponse:
    return _to_response(histogram)


@router.post("/{name}/reset", response_model=HistogramResponse, status_code=status.HTTP_202_ACCEPTED)
def request_histogram_reset(histogram: NativeHistogram = Depends(get_histogram_or_404)) -> HistogramResponse:
    # Applied by the first snapshot taken once the minimum reset interval has elapsed.
    histogram.request_reset()
    return _to_response(histogram)
