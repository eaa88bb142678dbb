import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from native_histograms.core.config import Settings
from native_histograms.core.metrics import MetricsRegistry
from native_histograms.main import create_app


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        sampler_enabled=False,
        min_request_duration_seconds=0.001,
        max_request_duration_seconds=0.005,
        min_response_size=1024,
        max_response_size=2048,
        histogram_min_reset_interval_seconds=0,
    )


@pytest.fixture()
def metrics(test_settings: Settings) -> MetricsRegistry:
    return MetricsRegistry(test_settings)


@pytest.fixture()
def client(test_settings: Settings, metrics: MetricsRegistry) -> TestClient:
    app = create_app(settings=test_settings, metrics=metrics)
    with TestClient(app) as test_client:
        yield test_client
