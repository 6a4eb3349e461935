"""One serialized scrape cycle: collect, replace the snapshot, record health."""

import asyncio
import logging
import time
from typing import List, Optional

from ..collectors.server_stats_collector import ServerStatsCollector
from ..utils.errors import FatalListError
from ..utils.metrics import ScrapeOutcome, StatRecord
from .prom_exporter import PromExporter, ScrapeMetrics


class Scraper:
    """
    Runs scrape cycles one at a time.

    The lock covers collect, reset, update and observe, so two triggers
    (an inbound /metrics request and the interval job, or two concurrent
    requests) never interleave their writes to the snapshot.
    """

    def __init__(
        self,
        collector: ServerStatsCollector,
        exporter: PromExporter,
        metrics: ScrapeMetrics,
        logger: logging.Logger = None
    ):
        self.collector = collector
        self.exporter = exporter
        self.metrics = metrics
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._lock = asyncio.Lock()

    async def run(self, deadline: Optional[float] = None) -> ScrapeOutcome:
        """
        Execute one complete scrape cycle.

        A failed server listing is logged and counted, and leaves an empty
        snapshot; it is not raised.

        Args:
            deadline: Absolute time.monotonic() instant the cycle must finish by

        Returns:
            ScrapeOutcome: Summary of the cycle
        """
        async with self._lock:
            start_time = time.monotonic()
            error: Optional[FatalListError] = None
            records: List[StatRecord] = []
            failures: List[StatRecord] = []

            try:
                records, failures = await self.collector.collect_all(deadline)
            except FatalListError as e:
                error = e
                self.logger.error(
                    f"collect error: {e}",
                    extra={
                        "error_type": type(e.__cause__ or e).__name__,
                        "error_message": str(e)
                    }
                )

            self.exporter.reset()
            self.exporter.update(records)

            duration = time.monotonic() - start_time
            self.metrics.observe_outcome(error, duration)

        outcome = ScrapeOutcome(
            duration=duration,
            succeeded=error is None,
            error_count=len(failures),
            record_count=len(records)
        )
        self.logger.info(
            f"Scrape cycle finished in {duration:.2f}s: "
            f"{outcome.record_count} server(s), {outcome.error_count} failure(s)",
            extra={"succeeded": outcome.succeeded}
        )
        return outcome
