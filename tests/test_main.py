"""Tests for the HTTP surface and CLI wiring."""

import time

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from komodo_exporter.config.models import ExporterConfig, ScrapeConfig
from komodo_exporter.main import build_app, load_config
from komodo_exporter.services.komodo_client import KomodoClient

from conftest import FakeKomodo, server

# Fixtures imported from conftest.py: komodo_config, logger


def samples(body: str):
    """Map (metric name, server_id) -> value for every sample in a scrape."""
    values = {}
    for family in text_string_to_metric_families(body):
        for sample in family.samples:
            values[(sample.name, sample.labels.get("server_id"))] = sample.value
    return values


@pytest.fixture
def fake():
    return FakeKomodo(
        servers=[server("aaa", "server-a"), server("bbb", "server-b")],
        stats={"aaa": {"cpu_perc": 10.0, "mem_total_gb": 8.0}},
        fail_servers={"bbb"},
    )


def make_app(fake, komodo_config, logger, **scrape_options):
    config = ExporterConfig(komodo=komodo_config, scrape=ScrapeConfig(**scrape_options))
    client = KomodoClient(komodo_config, logger, transport=fake.transport())
    return build_app(config, logger, client)


def test_healthz(fake, komodo_config, logger):
    with TestClient(make_app(fake, komodo_config, logger)) as http:
        response = http.get("/healthz")

    assert response.status_code == 200
    assert response.text == "ok"
    assert fake.requests == []


def test_metrics_scrapes_on_demand(fake, komodo_config, logger):
    with TestClient(make_app(fake, komodo_config, logger)) as http:
        response = http.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")

    values = samples(response.text)
    assert values[("komodo_cpu_perc", "aaa")] == 10.0
    assert values[("komodo_mem_total_gb", "aaa")] == 8.0
    assert ("komodo_cpu_perc", "bbb") not in values
    assert values[("komodo_scrape_errors_total", None)] == 0
    assert values[("komodo_scrape_duration_seconds_count", None)] == 1


def test_metrics_served_when_listing_fails(fake, komodo_config, logger):
    """A failed scrape still answers 200 with the health counters."""
    async def broken(request):
        return httpx.Response(502, text="bad gateway")

    fake.handler = broken

    with TestClient(make_app(fake, komodo_config, logger)) as http:
        first = http.get("/metrics")
        second = http.get("/metrics")

    assert first.status_code == 200
    assert second.status_code == 200
    values = samples(second.text)
    assert values[("komodo_scrape_errors_total", None)] == 2
    assert not any(name == "komodo_cpu_perc" for name, _ in values)


def test_interval_mode_scrapes_in_background(fake, komodo_config, logger):
    """In interval mode /metrics only reads; the scheduler fills the snapshot."""
    with TestClient(make_app(fake, komodo_config, logger, mode="interval", interval=60)) as http:
        values = {}
        for _ in range(50):
            values = samples(http.get("/metrics").text)
            if ("komodo_cpu_perc", "aaa") in values:
                break
            time.sleep(0.05)

    assert values[("komodo_cpu_perc", "aaa")] == 10.0
    # one scheduled cycle, however many times /metrics was read
    assert values[("komodo_scrape_duration_seconds_count", None)] == 1


def test_build_app_uses_private_registry(fake, komodo_config, logger):
    first = make_app(fake, komodo_config, logger)
    second = make_app(fake, komodo_config, logger)

    assert first.state.registry is not second.state.registry


def test_load_config_exits_on_missing_env(monkeypatch):
    for key in ("KOMODO_HOST", "KOMODO_API_KEY", "KOMODO_API_SECRET"):
        monkeypatch.delenv(key, raising=False)

    with pytest.raises(SystemExit) as exc_info:
        load_config()

    assert exc_info.value.code == 1


def test_load_config_exits_on_missing_file(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        load_config(str(tmp_path / "absent.yaml"))

    assert exc_info.value.code == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
