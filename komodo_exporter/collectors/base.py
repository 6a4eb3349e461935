"""Base collector abstract class and per-server error absorption."""

from abc import ABC, abstractmethod
from typing import Any, List
import logging
from functools import wraps

from ..services.komodo_types import ServerDescriptor
from ..utils.metrics import StatRecord


class BaseCollector(ABC):
    """Abstract base class for collectors."""

    def __init__(self, config: Any, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            config: Collector-specific configuration
            logger: Logger instance
        """
        self.config = config
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self, deadline: float = None) -> List[StatRecord]:
        """
        Collect stats and return one record per reachable server.

        Args:
            deadline: Absolute time.monotonic() instant the cycle must finish by

        Returns:
            List[StatRecord]: Successful records only

        Note:
            Per-server fetches should use @safe_fetch so a single failing
            server can never abort the cycle.
        """
        pass


def safe_fetch(func):
    """
    Decorator that turns a per-server fetch failure into a tagged StatRecord.

    The wrapped coroutine must take the ServerDescriptor as its first
    argument after self. Any Exception is logged and returned as
    StatRecord.failed(); cancellation is not an Exception and propagates.

    Args:
        func: Per-server fetch method to wrap

    Returns:
        Wrapped coroutine that never raises Exception
    """
    @wraps(func)
    async def wrapper(self, server: ServerDescriptor, *args, **kwargs) -> StatRecord:
        try:
            return await func(self, server, *args, **kwargs)
        except Exception as e:
            self.logger.warning(
                f"get stats for {server.name} ({server.id}): {e}",
                extra={"server_id": server.id, "server_name": server.name}
            )
            return StatRecord.failed(server.id, server.name, e)
    return wrapper
