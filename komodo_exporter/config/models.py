"""Pydantic configuration models for the exporter."""

from typing import Literal, Tuple

from pydantic import BaseModel, Field, field_validator


class KomodoConfig(BaseModel):
    """Connection settings for the Komodo API."""
    host: str
    api_key: str = Field(min_length=1)
    api_secret: str = Field(min_length=1)
    request_timeout: float = Field(default=15.0, gt=0)
    insecure_skip_verify: bool = False  # only for self-signed TLS

    @field_validator('host')
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate URL format and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(('http://', 'https://')):
            raise ValueError('KOMODO_HOST must start with http:// or https://')
        return v.rstrip('/')


class CollectorConfig(BaseModel):
    """Fan-out settings for the stats collector."""
    max_concurrent: int = 8  # <= 0 falls back to the default
    only_ok: bool = False


class ScrapeConfig(BaseModel):
    """When and how long a scrape cycle runs."""
    mode: Literal["on_demand", "interval"] = "on_demand"
    interval: float = Field(default=5.0, gt=0)
    timeout: float = Field(default=20.0, gt=0)


class ServerConfig(BaseModel):
    """Inbound HTTP listener settings."""
    listen_addr: str = ":9109"

    @field_validator('listen_addr')
    @classmethod
    def validate_listen_addr(cls, v: str) -> str:
        """Require host:port or :port with a valid port number."""
        host, sep, port = v.strip().rpartition(':')
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f'invalid listen address {v!r}, expected host:port or :port')
        return v.strip()

    @property
    def bind(self) -> Tuple[str, int]:
        """Split listen_addr into (host, port); an empty host binds all interfaces."""
        host, _, port = self.listen_addr.rpartition(':')
        return host.strip('[]') or "0.0.0.0", int(port)


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    komodo: KomodoConfig
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    scrape: ScrapeConfig = Field(default_factory=ScrapeConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v
