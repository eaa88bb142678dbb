import random

from native_histograms.core.config import Settings
from native_histograms.core.metrics import MetricsRegistry
from native_histograms.tasks.periodic import PeriodicTask

SAMPLE_MAX_RESPONSE_SIZE = 50000


def generate_samples(metrics: MetricsRegistry, rng: random.Random | None = None) -> tuple[float, float]:
    source = rng or random
    duration = source.randrange(1000) / 1000.0  # [0, 1) seconds
    size = float(source.randrange(SAMPLE_MAX_RESPONSE_SIZE))
    metrics.record(metrics.request_duration, duration)
    metrics.record(metrics.response_size, size)
    return duration, size


def build_sampler(metrics: MetricsRegistry, settings: Settings, rng: random.Random | None = None) -> PeriodicTask:
    return PeriodicTask(
        name="background-sampler",
        interval_seconds=settings.sampler_interval_seconds,
        callback=lambda: generate_samples(metrics, rng),
    )
