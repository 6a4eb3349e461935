"""Prometheus metric definitions for Komodo server stats and scrape health."""

import time
from typing import Iterable, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from ..utils.metrics import StatRecord

SERVER_LABELS = ['server_id', 'server_name']


class PromExporter:
    """
    Per-server gauges holding the current snapshot.

    Metrics (labels server_id, server_name):
    - komodo_cpu_perc
    - komodo_mem_free_gb / komodo_mem_used_gb / komodo_mem_total_gb
    - komodo_network_ingress_bytes / komodo_network_egress_bytes
    """

    def __init__(self, registry: CollectorRegistry):
        self.registry = registry

        self.cpu_perc = Gauge(
            'komodo_cpu_perc',
            'CPU percent',
            SERVER_LABELS,
            registry=registry
        )

        self.mem_free = Gauge(
            'komodo_mem_free_gb',
            'Free memory (GB)',
            SERVER_LABELS,
            registry=registry
        )

        self.mem_used = Gauge(
            'komodo_mem_used_gb',
            'Used memory (GB)',
            SERVER_LABELS,
            registry=registry
        )

        self.mem_total = Gauge(
            'komodo_mem_total_gb',
            'Total memory (GB)',
            SERVER_LABELS,
            registry=registry
        )

        self.net_in = Gauge(
            'komodo_network_ingress_bytes',
            'Network ingress bytes',
            SERVER_LABELS,
            registry=registry
        )

        self.net_out = Gauge(
            'komodo_network_egress_bytes',
            'Network egress bytes',
            SERVER_LABELS,
            registry=registry
        )

    @property
    def _gauges(self):
        return (self.cpu_perc, self.mem_free, self.mem_used, self.mem_total, self.net_in, self.net_out)

    def reset(self) -> None:
        """Drop every labeled series so vanished servers do not linger."""
        for gauge in self._gauges:
            gauge.clear()

    def update(self, records: Iterable[StatRecord]) -> None:
        for record in records:
            labels = (record.server_id, record.server_name)
            self.cpu_perc.labels(*labels).set(record.cpu_perc)
            self.mem_free.labels(*labels).set(record.mem_free_gb)
            self.mem_used.labels(*labels).set(record.mem_used_gb)
            self.mem_total.labels(*labels).set(record.mem_total_gb)
            self.net_in.labels(*labels).set(record.network_ingress_bytes)
            self.net_out.labels(*labels).set(record.network_egress_bytes)


class ScrapeMetrics:
    """Cumulative health of the scrape loop itself."""

    def __init__(self, registry: CollectorRegistry):
        self.duration = Histogram(
            'komodo_scrape_duration_seconds',
            'Duration of Komodo scrapes in seconds.',
            registry=registry
        )

        self.errors = Counter(
            'komodo_scrape_errors_total',
            'Total number of Komodo scrape errors.',
            registry=registry
        )

        self.last_success = Gauge(
            'komodo_scrape_last_success_timestamp',
            'Unix timestamp of the last successful Komodo scrape.',
            registry=registry
        )

    def observe_outcome(self, error: Optional[BaseException], elapsed: float) -> None:
        """
        Record one cycle.

        Args:
            error: The cycle's fatal error, or None if it completed
            elapsed: Cycle duration in seconds
        """
        self.duration.observe(elapsed)
        if error is not None:
            self.errors.inc()
            return
        self.last_success.set(time.time())


def render(registry: CollectorRegistry) -> bytes:
    """Serialize the registry in the Prometheus text exposition format."""
    return generate_latest(registry)
