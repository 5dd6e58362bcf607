from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from nimbus_admin.core.errors import UpstreamError


class ReplicationState(str, Enum):
    ON = "ON"
    OFF = "OFF"


class RunningState(str, Enum):
    Running = "Running"
    Stopped = "Stopped"


class NimbusModel(BaseModel):
    """Field names match the engine's response columns; JSON goes out camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReplicationStatus(NimbusModel):
    full_replication: ReplicationState
    incremental_replication: ReplicationState
    full_running: RunningState
    incremental_running: RunningState

    @field_validator("full_replication", "incremental_replication", mode="before")
    @classmethod
    def _upper_state(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("full_running", "incremental_running", mode="before")
    @classmethod
    def _title_running(cls, v):
        return v.capitalize() if isinstance(v, str) else v


class PerformanceConfig(NimbusModel):
    binlog_batch_size: int
    fetch_batch_size: int
    flush_interval_ms: int


class BinlogPosition(NimbusModel):
    file: str
    position: int
    server_id: int
    timestamp: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify(cls, v):
        return str(v) if v is not None else None


class MySqlSourceConfig(NimbusModel):
    mysql_host: str
    mysql_port: int
    mysql_user: str
    mysql_password: Optional[str] = None
    mysql_server_id: int


class MySqlSourceUpdate(NimbusModel):
    """Partial source config; only non-empty fields are written."""
    mysql_host: Optional[str] = None
    mysql_port: Optional[int] = None
    mysql_user: Optional[str] = None
    mysql_password: Optional[str] = None
    mysql_server_id: Optional[int] = None


M = TypeVar("M", bound=BaseModel)


def parse_row(model: Type[M], row: Optional[Dict[str, Any]], topic: str) -> M:
    if not row:
        raise UpstreamError(f"failed to retrieve {topic}")
    # Engines differ in column-name case
    normalized = {str(k).lower(): v for k, v in row.items()}
    try:
        return model.model_validate(normalized)
    except pydantic.ValidationError as e:
        raise UpstreamError(f"malformed {topic} response: {e.error_count()} invalid field(s)")
