"""Per-server stat records and scrape outcome structures."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class StatRecord:
    """One server's identity joined with its stats for a single scrape cycle."""

    server_id: str
    server_name: str
    cpu_perc: float = 0.0
    mem_free_gb: float = 0.0
    mem_used_gb: float = 0.0
    mem_total_gb: float = 0.0
    network_ingress_bytes: float = 0.0
    network_egress_bytes: float = 0.0
    refresh_ts: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_stats(cls, server_id: str, server_name: str, stats: Dict[str, Any]) -> "StatRecord":
        """Join a server identity with its decoded stats. Values are copied as-is."""
        return cls(
            server_id=server_id,
            server_name=server_name,
            cpu_perc=stats["cpu_perc"],
            mem_free_gb=stats["mem_free_gb"],
            mem_used_gb=stats["mem_used_gb"],
            mem_total_gb=stats["mem_total_gb"],
            network_ingress_bytes=stats["network_ingress_bytes"],
            network_egress_bytes=stats["network_egress_bytes"],
            refresh_ts=stats["refresh_ts"],
        )

    @classmethod
    def failed(cls, server_id: str, server_name: str, error: BaseException) -> "StatRecord":
        """Tagged failure for a server whose stats could not be fetched."""
        return cls(server_id=server_id, server_name=server_name, error=error)


@dataclass
class ScrapeOutcome:
    """Summary of one scrape cycle, used to update health counters."""

    duration: float
    succeeded: bool
    error_count: int = 0
    record_count: int = 0
