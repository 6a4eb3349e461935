"""Pydantic models for the Komodo /read wire format."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from ..utils.status import ServerState


class ReadRequest(BaseModel):
    """Body of every POST to /read."""
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ServerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str = ""

    @field_validator('state', mode='before')
    @classmethod
    def null_state(cls, v):
        return "" if v is None else v


class ServerDescriptor(BaseModel):
    """One item of the ListServers response."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    info: ServerInfo = Field(default_factory=ServerInfo)

    @field_validator('name', mode='before')
    @classmethod
    def null_name(cls, v):
        return "" if v is None else v

    @field_validator('info', mode='before')
    @classmethod
    def null_info(cls, v):
        """A null info block decodes like a missing one."""
        return ServerInfo() if v is None else v

    @property
    def state(self) -> ServerState:
        return ServerState.parse(self.info.state)


class ServerStats(BaseModel):
    """GetSystemStats response. Komodo omits or nulls fields it has no value for."""
    cpu_perc: float = 0.0
    mem_free_gb: float = 0.0
    mem_used_gb: float = 0.0
    mem_total_gb: float = 0.0
    network_ingress_bytes: float = 0.0
    network_egress_bytes: float = 0.0
    refresh_ts: int = 0
    polling_rate: Optional[str] = None

    @field_validator(
        'cpu_perc', 'mem_free_gb', 'mem_used_gb', 'mem_total_gb',
        'network_ingress_bytes', 'network_egress_bytes', 'refresh_ts',
        mode='before'
    )
    @classmethod
    def null_to_zero(cls, v):
        return 0 if v is None else v


ServerList = TypeAdapter(List[ServerDescriptor])
