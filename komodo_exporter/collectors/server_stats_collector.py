"""Komodo server stats collector with bounded fan-out."""

import asyncio
import logging
from typing import List, Optional, Tuple

from ..config.models import CollectorConfig
from ..services.komodo_client import KomodoClient
from ..services.komodo_types import ServerDescriptor
from ..utils.errors import FatalListError, KomodoAPIError
from ..utils.metrics import StatRecord
from ..utils.status import ServerState
from .base import BaseCollector, safe_fetch

DEFAULT_MAX_CONCURRENT = 8


class ServerStatsCollector(BaseCollector):
    """
    Collect system stats for every server Komodo knows about.

    One cycle lists the servers, then fetches stats for each of them
    concurrently, with at most max_concurrent requests in flight. A failing
    server is logged and left out of the result; only a failed listing
    aborts the cycle.
    """

    def __init__(
        self,
        client: KomodoClient,
        config: Optional[CollectorConfig] = None,
        logger: logging.Logger = None
    ):
        """
        Initialize stats collector.

        Args:
            client: Komodo API client
            config: Fan-out and filtering settings
            logger: Logger instance
        """
        super().__init__(config or CollectorConfig(), logger or logging.getLogger(__name__))
        self.client = client

    @property
    def max_concurrent(self) -> int:
        if self.config.max_concurrent <= 0:
            return DEFAULT_MAX_CONCURRENT
        return self.config.max_concurrent

    async def collect(self, deadline: Optional[float] = None) -> List[StatRecord]:
        """
        Run one collection and return the successful records.

        Args:
            deadline: Absolute time.monotonic() instant the cycle must finish by

        Returns:
            List[StatRecord]: One record per server whose stats were fetched

        Raises:
            FatalListError: If the server list could not be retrieved
        """
        records, _ = await self.collect_all(deadline)
        return records

    async def collect_all(
        self,
        deadline: Optional[float] = None
    ) -> Tuple[List[StatRecord], List[StatRecord]]:
        """
        Run one collection and return successes and failures separately.

        Args:
            deadline: Absolute time.monotonic() instant the cycle must finish by

        Returns:
            Tuple of (successful records, failed records)

        Raises:
            FatalListError: If the server list could not be retrieved
        """
        try:
            servers = await self.client.list_servers(deadline)
        except KomodoAPIError as e:
            self.logger.error(f"list servers failed: {e}")
            raise FatalListError(f"list servers: {e}") from e

        targets = self._select_targets(servers)
        if not targets:
            self.logger.info(f"No eligible servers ({len(servers)} listed)")
            return [], []

        self.logger.info(
            f"Fetching stats for {len(targets)} server(s), "
            f"max {self.max_concurrent} concurrent"
        )

        semaphore = asyncio.Semaphore(self.max_concurrent)
        tasks = [self._fetch_server(server, semaphore, deadline) for server in targets]
        # safe_fetch absorbs Exception; cancellation propagates out of gather
        results = await asyncio.gather(*tasks)

        records: List[StatRecord] = []
        failures: List[StatRecord] = []
        for result in results:
            if result.ok:
                records.append(result)
            else:
                failures.append(result)

        if failures:
            self.logger.warning(
                f"Collection complete: {len(records)} ok, {len(failures)} failed",
                extra={"failed_servers": [f.server_id for f in failures]}
            )
        else:
            self.logger.info(f"Collection complete: {len(records)} ok")

        return records, failures

    def _select_targets(self, servers: List[ServerDescriptor]) -> List[ServerDescriptor]:
        """Apply the state filter and drop repeated ids, keeping list order."""
        targets = []
        seen = set()
        for server in servers:
            if self.config.only_ok and server.state is not ServerState.OK:
                self.logger.debug(f"Skipping {server.name} ({server.id}): state {server.info.state!r}")
                continue
            if server.id in seen:
                self.logger.warning(f"Duplicate server id {server.id} in listing, ignoring {server.name}")
                continue
            seen.add(server.id)
            targets.append(server)
        return targets

    @safe_fetch
    async def _fetch_server(
        self,
        server: ServerDescriptor,
        semaphore: asyncio.Semaphore,
        deadline: Optional[float]
    ) -> StatRecord:
        async with semaphore:
            stats = await self.client.get_stats(server.id, deadline)
        return StatRecord.from_stats(server.id, server.name, stats.model_dump())
