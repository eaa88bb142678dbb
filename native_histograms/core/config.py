from datetime import timedelta

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from native_histograms.core.histogram import DEFAULT_ZERO_THRESHOLD


class Settings(BaseSettings):
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    read_timeout_seconds: float = 15.0
    write_timeout_seconds: float = 15.0
    shutdown_grace_seconds: float = 5.0

    sampler_enabled: bool = True
    sampler_interval_seconds: float = 1.0

    min_request_duration_seconds: float = 0.01
    max_request_duration_seconds: float = 0.5
    min_response_size: int = 1024
    max_response_size: int = 102400

    histogram_bucket_factor: float = 1.1
    histogram_max_buckets: int = 100
    histogram_min_reset_interval_seconds: float = 3600.0
    histogram_zero_threshold: float = DEFAULT_ZERO_THRESHOLD

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        if self.min_request_duration_seconds < 0:
            raise ValueError("min_request_duration_seconds must not be negative")
        if self.min_request_duration_seconds > self.max_request_duration_seconds:
            raise ValueError("min_request_duration_seconds must not exceed max_request_duration_seconds")
        if self.min_response_size < 0:
            raise ValueError("min_response_size must not be negative")
        if self.min_response_size > self.max_response_size:
            raise ValueError("min_response_size must not exceed max_response_size")
        if self.histogram_bucket_factor <= 1:
            raise ValueError("histogram_bucket_factor must be greater than 1")
        if self.histogram_max_buckets < 2:
            raise ValueError("histogram_max_buckets must be at least 2")
        if self.sampler_interval_seconds <= 0:
            raise ValueError("sampler_interval_seconds must be positive")
        if self.write_timeout_seconds <= 0:
            raise ValueError("write_timeout_seconds must be positive")
        if self.max_request_duration_seconds >= self.write_timeout_seconds:
            raise ValueError("max_request_duration_seconds must be below write_timeout_seconds")
        return self

    @property
    def histogram_min_reset_interval(self) -> timedelta:
        return timedelta(seconds=self.histogram_min_reset_interval_seconds)


settings = Settings()
