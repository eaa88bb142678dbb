import logging
import math
from collections.abc import Iterable

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, HistogramMetricFamily, Metric
from prometheus_client.registry import Collector
from prometheus_client.utils import floatToGoString

from native_histograms.core.config import Settings
from native_histograms.core.exceptions import InvalidObservation
from native_histograms.core.histogram import HistogramView, NativeHistogram

REQUEST_DURATION_NAME = "http_request_duration_seconds"
RESPONSE_SIZE_NAME = "http_response_size_bytes"
HISTOGRAM_HELP = {
    REQUEST_DURATION_NAME: "Duration of HTTP requests in seconds (native histogram)",
    RESPONSE_SIZE_NAME: "Size of HTTP responses in bytes (native histogram)",
}

logger = logging.getLogger("native_histograms.metrics")


def cumulative_buckets(view: HistogramView) -> list[tuple[str, float]]:
    """Flatten a native view into classic ``le`` buckets, zero bucket first, ``+Inf`` last."""
    running = view.zero_count
    buckets = [(floatToGoString(view.zero_threshold), running)]
    for index, count in view.buckets:
        running += count
        upper = view.bounds(index)[1]
        if math.isinf(upper):
            # Counted by the +Inf bucket below.
            continue
        le = floatToGoString(upper)
        if le == buckets[-1][0]:
            buckets[-1] = (le, running)
        else:
            buckets.append((le, running))
    buckets.append(("+Inf", view.count))
    return buckets


class NativeHistogramCollector(Collector):
    def __init__(self, histograms: dict[str, tuple[NativeHistogram, str]]) -> None:
        self._histograms = histograms

    def describe(self) -> Iterable[Metric]:
        return []

    def collect(self) -> Iterable[Metric]:
        growth = GaugeMetricFamily(
            "native_histogram_log_growth_factor",
            "Natural logarithm of the current bucket growth factor of each native histogram",
            labels=["histogram"],
        )
        downgrades = GaugeMetricFamily(
            "native_histogram_resolution_downgrades",
            "Resolution downgrades since the last reset",
            labels=["histogram"],
        )
        rejected = CounterMetricFamily(
            "native_histogram_rejected_observations",
            "Observations rejected as negative or non-finite",
            labels=["histogram"],
        )
        for name, (histogram, documentation) in self._histograms.items():
            view = histogram.snapshot()
            yield HistogramMetricFamily(
                name,
                documentation,
                buckets=cumulative_buckets(view),
                sum_value=view.sum,
            )
            growth.add_metric([name], view.log_growth_factor)
            downgrades.add_metric([name], view.downgrades)
            rejected.add_metric([name], view.rejected)
        yield growth
        yield downgrades
        yield rejected


class MetricsRegistry:
    def __init__(self, settings: Settings) -> None:
        self.registry = CollectorRegistry()
        self.request_duration = self._build_histogram(REQUEST_DURATION_NAME, settings)
        self.response_size = self._build_histogram(RESPONSE_SIZE_NAME, settings)
        self.histograms: dict[str, NativeHistogram] = {
            REQUEST_DURATION_NAME: self.request_duration,
            RESPONSE_SIZE_NAME: self.response_size,
        }
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["endpoint"],
            registry=self.registry,
        )
        self.registry.register(
            NativeHistogramCollector(
                {name: (histogram, HISTOGRAM_HELP[name]) for name, histogram in self.histograms.items()}
            )
        )

    @staticmethod
    def _build_histogram(name: str, settings: Settings) -> NativeHistogram:
        return NativeHistogram(
            name,
            growth_factor=settings.histogram_bucket_factor,
            max_buckets=settings.histogram_max_buckets,
            min_reset_interval=settings.histogram_min_reset_interval,
            zero_threshold=settings.histogram_zero_threshold,
        )

    def get_histogram(self, name: str) -> NativeHistogram | None:
        return self.histograms.get(name)

    def record(self, histogram: NativeHistogram, value: float) -> bool:
        try:
            histogram.observe(value)
        except InvalidObservation as exc:
            logger.warning("observation_rejected histogram=%s value=%r", exc.histogram, exc.value)
            return False
        return True

    def request_count(self, endpoint: str) -> float:
        value = self.registry.get_sample_value("http_requests_total", {"endpoint": endpoint})
        return value or 0.0

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
