from datetime import timedelta

import pytest
from pydantic import ValidationError

from native_histograms.core.config import Settings


def test_defaults_match_demo_service():
    settings = Settings(_env_file=None)

    assert settings.app_port == 8080
    assert settings.sampler_interval_seconds == 1.0
    assert settings.min_request_duration_seconds == 0.01
    assert settings.max_request_duration_seconds == 0.5
    assert settings.min_response_size == 1024
    assert settings.max_response_size == 102400
    assert settings.histogram_bucket_factor == 1.1
    assert settings.histogram_max_buckets == 100
    assert settings.histogram_min_reset_interval == timedelta(hours=1)


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("APP_PORT", "9090")
    monkeypatch.setenv("HISTOGRAM_MAX_BUCKETS", "32")
    monkeypatch.setenv("SAMPLER_ENABLED", "false")

    settings = Settings(_env_file=None)

    assert settings.app_port == 9090
    assert settings.histogram_max_buckets == 32
    assert settings.sampler_enabled is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_request_duration_seconds": 1.0, "max_request_duration_seconds": 0.5},
        {"min_response_size": 10, "max_response_size": 5},
        {"histogram_bucket_factor": 1.0},
        {"histogram_max_buckets": 1},
        {"sampler_interval_seconds": 0},
        {"write_timeout_seconds": 0},
        {"max_request_duration_seconds": 20},
    ],
)
def test_invalid_ranges_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
