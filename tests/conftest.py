"""Shared pytest configuration and fixtures."""

import asyncio
import json
from typing import Dict, List, Optional, Set

import httpx
import pytest

from komodo_exporter.config.models import CollectorConfig, KomodoConfig
from komodo_exporter.collectors.server_stats_collector import ServerStatsCollector
from komodo_exporter.services.komodo_client import KomodoClient
from komodo_exporter.utils.logger import setup_logger


BASE_URL = "http://komodo.test"


def server(server_id: str, name: str, state: str = "Ok") -> Dict:
    """ListServers item in wire format."""
    return {"id": server_id, "name": name, "info": {"state": state}}


class FakeKomodo:
    """
    In-process stand-in for the Komodo /read endpoint.

    Give it a server list and per-server stat payloads; ids in fail_servers
    answer 500. Every request is recorded, and the peak number of
    concurrent GetSystemStats calls is tracked.
    """

    def __init__(
        self,
        servers: Optional[List[Dict]] = None,
        stats: Optional[Dict[str, Dict]] = None,
        fail_servers: Optional[Set[str]] = None,
        delay: float = 0.0
    ):
        self.servers = servers or []
        self.stats = stats or {}
        self.fail_servers = fail_servers or set()
        self.delay = delay
        self.requests: List[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def stats_calls(self) -> List[str]:
        return [
            json.loads(r.content)["params"]["server"]
            for r in self.requests
            if json.loads(r.content)["type"] == "GetSystemStats"
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method != "POST" or request.url.path != "/read":
            return httpx.Response(404, text="not found")

        try:
            body = json.loads(request.content)
        except ValueError:
            return httpx.Response(400, text="bad request")

        if body["type"] == "ListServers":
            return httpx.Response(200, json=self.servers)

        if body["type"] == "GetSystemStats":
            server_id = body["params"]["server"]
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(self.delay)
            finally:
                self.in_flight -= 1

            if server_id in self.fail_servers:
                return httpx.Response(500, json={"error": "server stats not available"})
            if server_id not in self.stats:
                return httpx.Response(404)
            return httpx.Response(200, json=self.stats[server_id])

        return httpx.Response(400, text="unknown type")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def komodo_config():
    return KomodoConfig(host=BASE_URL, api_key="test-key", api_secret="test-secret")


@pytest.fixture
def make_client(komodo_config, logger):
    """Build a KomodoClient whose requests go to the given transport."""
    def _make(transport: httpx.AsyncBaseTransport) -> KomodoClient:
        return KomodoClient(komodo_config, logger, transport=transport)
    return _make


@pytest.fixture
def make_collector(make_client, logger):
    """Build a ServerStatsCollector wired to a FakeKomodo."""
    def _make(fake: FakeKomodo, **collector_options) -> ServerStatsCollector:
        return ServerStatsCollector(
            make_client(fake.transport()),
            CollectorConfig(**collector_options),
            logger
        )
    return _make
