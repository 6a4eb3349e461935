"""Exception hierarchy for the exporter."""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class KomodoAPIError(ExporterError):
    """A single call to the Komodo /read endpoint failed."""


class TransportError(KomodoAPIError):
    """The network call itself failed (DNS, refused, TLS, timeout, expired deadline)."""


class ProtocolError(KomodoAPIError):
    """Komodo answered with a status outside 200-299."""

    def __init__(self, status_code: int, body: str, request_type: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.request_type = request_type
        super().__init__(f"komodo http {status_code}: {body}")


class DecodeError(KomodoAPIError):
    """Response body could not be parsed into the expected shape."""


class FatalListError(ExporterError):
    """Listing servers failed, so the whole scrape cycle is aborted."""
