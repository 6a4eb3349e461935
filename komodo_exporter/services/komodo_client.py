"""Komodo API client for the /read endpoint."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..config.models import KomodoConfig
from ..utils.errors import DecodeError, ProtocolError, TransportError
from .komodo_types import ReadRequest, ServerDescriptor, ServerList, ServerStats


class KomodoClient:
    """
    Async client for the two Komodo read operations the exporter needs.

    Every call is a POST to <host>/read with a {type, params} body and the
    static API key/secret headers. One httpx.AsyncClient is shared by all
    calls; close it with aclose() or use the client as an async context
    manager.
    """

    def __init__(
        self,
        config: KomodoConfig,
        logger: logging.Logger = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Komodo client.

        Args:
            config: Komodo connection configuration
            logger: Optional logger instance
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = config.host.rstrip('/')
        self.timeout = config.request_timeout
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

        self._read_url = f"{self.base_url}/read"
        self._http = httpx.AsyncClient(
            headers={
                "X-Api-Key": config.api_key,
                "X-Api-Secret": config.api_secret,
            },
            timeout=self.timeout,
            verify=not config.insecure_skip_verify,
            transport=transport,
        )

        if config.insecure_skip_verify:
            self.logger.warning("TLS certificate verification disabled for Komodo API")

    async def __aenter__(self) -> "KomodoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_servers(self, deadline: Optional[float] = None) -> List[ServerDescriptor]:
        """
        Enumerate all servers known to Komodo.

        Args:
            deadline: Absolute time.monotonic() instant the call must finish by

        Returns:
            List[ServerDescriptor]: Servers in the order Komodo returned them

        Raises:
            TransportError, ProtocolError, DecodeError
        """
        data = await self._read("ListServers", {}, deadline)
        try:
            return ServerList.validate_python(data)
        except ValidationError as e:
            raise DecodeError(f"unexpected ListServers response: {e}") from e

    async def get_stats(self, server_id: str, deadline: Optional[float] = None) -> ServerStats:
        """
        Fetch current system stats for one server.

        Args:
            server_id: Komodo server id
            deadline: Absolute time.monotonic() instant the call must finish by

        Returns:
            ServerStats: Stats as reported by the server's periphery agent

        Raises:
            TransportError, ProtocolError, DecodeError
        """
        data = await self._read("GetSystemStats", {"server": server_id}, deadline)
        try:
            return ServerStats.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"unexpected GetSystemStats response for {server_id}: {e}") from e

    def _timeout_for(self, request_type: str, deadline: Optional[float]) -> float:
        """Per-request timeout, shortened to whatever is left before the deadline."""
        if deadline is None:
            return self.timeout

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TransportError(f"{request_type}: deadline exceeded before request was sent")
        return min(self.timeout, remaining)

    async def _read(self, request_type: str, params: Dict[str, Any], deadline: Optional[float]) -> Any:
        timeout = self._timeout_for(request_type, deadline)
        body = ReadRequest(type=request_type, params=params).model_dump()

        self.logger.debug(f"POST {self._read_url} type={request_type} timeout={timeout:.1f}s")

        try:
            # httpx timeouts are per phase; wait_for bounds the whole exchange
            response = await asyncio.wait_for(
                self._http.post(self._read_url, json=body, timeout=timeout),
                timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise TransportError(f"{request_type}: request timed out after {timeout:.1f}s") from e
        except httpx.RequestError as e:
            raise TransportError(f"{request_type}: {type(e).__name__}: {e}") from e

        if not 200 <= response.status_code <= 299:
            raise ProtocolError(response.status_code, response.text, request_type)

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"{request_type}: response is not valid JSON: {e}") from e
