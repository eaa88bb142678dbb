from native_histograms.core.metrics import MetricsRegistry


def test_health_is_always_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_endpoints(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    assert "Prometheus Native Histogram Demo" in response.text
    assert "http_request_duration_seconds" in response.text


def test_work_endpoint_records_one_sample_per_histogram(client, metrics: MetricsRegistry, test_settings):
    response = client.get("/api")

    assert response.status_code == 200
    assert response.text == "OK"
    assert metrics.request_count("/api") == 1

    duration = metrics.request_duration.snapshot()
    size = metrics.response_size.snapshot()
    assert duration.count == 1
    assert size.count == 1
    assert test_settings.min_request_duration_seconds <= duration.sum < 1.0
    assert test_settings.min_response_size <= size.sum <= test_settings.max_response_size


def test_work_endpoint_accumulates_across_calls(client, metrics: MetricsRegistry):
    for _ in range(3):
        assert client.get("/api").status_code == 200

    assert metrics.request_count("/api") == 3
    assert metrics.request_duration.snapshot().count == 3
    assert metrics.response_size.snapshot().count == 3


def test_health_does_not_touch_histograms(client, metrics: MetricsRegistry):
    client.get("/health")

    assert metrics.request_count("/health") == 1
    assert metrics.request_count("/api") == 0
    assert metrics.request_duration.snapshot().count == 0


def test_sampler_is_not_started_when_disabled(client):
    assert client.app.state.sampler is None
