"""
Control-command table for the NIMBUS dialect.

Every command text the admin gateway sends to an engine is rendered here from
a closed set of topics and keys. Values never reach the engine as raw text:
integers are parsed and re-serialized, strings are quoted and escaped,
switches become ON/OFF.
"""
from enum import Enum
from typing import Any, Iterable, Tuple, Union

from pymysql.converters import escape_string

from nimbus_admin.core.errors import ValidationError


class NimbusTopic(str, Enum):
    REPLICATION = "REPLICATION"
    PERFORMANCE = "PERFORMANCE"
    BINLOG = "BINLOG"
    MYSQL = "MYSQL"
    INCLUDED_DBS = "INCLUDED_DBS"
    SCHEMA_SYNC = "SCHEMA_SYNC"


class ValueKind(str, Enum):
    SWITCH = "switch"
    INTEGER = "integer"
    STRING = "string"
    BINLOG_POSITION = "binlog_position"


class NimbusKey(str, Enum):
    FULL_REPLICATION = "FULL_REPLICATION"
    INCREMENTAL_REPLICATION = "INCREMENTAL_REPLICATION"
    BINLOG_BATCH_SIZE = "BINLOG_BATCH_SIZE"
    FETCH_BATCH_SIZE = "FETCH_BATCH_SIZE"
    FLUSH_INTERVAL_MS = "FLUSH_INTERVAL_MS"
    BINLOG_POSITION = "BINLOG_POSITION"
    MYSQL_HOST = "MYSQL_HOST"
    MYSQL_PORT = "MYSQL_PORT"
    MYSQL_USER = "MYSQL_USER"
    MYSQL_PASSWORD = "MYSQL_PASSWORD"
    MYSQL_SERVER_ID = "MYSQL_SERVER_ID"
    INCLUDED_DBS = "INCLUDED_DBS"
    SYNC_SCHEMA = "SYNC_SCHEMA"

    @property
    def kind(self) -> ValueKind:
        return KEY_KINDS[self]

    @classmethod
    def from_field(cls, field: str) -> "NimbusKey":
        """Map a config field name (e.g. `binlog_batch_size`) to its key."""
        try:
            return cls(field.upper())
        except ValueError:
            raise ValidationError(f"Unknown setting: {field}")


KEY_KINDS = {
    NimbusKey.FULL_REPLICATION: ValueKind.SWITCH,
    NimbusKey.INCREMENTAL_REPLICATION: ValueKind.SWITCH,
    NimbusKey.BINLOG_BATCH_SIZE: ValueKind.INTEGER,
    NimbusKey.FETCH_BATCH_SIZE: ValueKind.INTEGER,
    NimbusKey.FLUSH_INTERVAL_MS: ValueKind.INTEGER,
    NimbusKey.BINLOG_POSITION: ValueKind.BINLOG_POSITION,
    NimbusKey.MYSQL_HOST: ValueKind.STRING,
    NimbusKey.MYSQL_PORT: ValueKind.INTEGER,
    NimbusKey.MYSQL_USER: ValueKind.STRING,
    NimbusKey.MYSQL_PASSWORD: ValueKind.STRING,
    NimbusKey.MYSQL_SERVER_ID: ValueKind.INTEGER,
    NimbusKey.INCLUDED_DBS: ValueKind.STRING,
    NimbusKey.SYNC_SCHEMA: ValueKind.SWITCH,
}

PERFORMANCE_KEYS = (
    NimbusKey.BINLOG_BATCH_SIZE,
    NimbusKey.FETCH_BATCH_SIZE,
    NimbusKey.FLUSH_INTERVAL_MS,
)


def render_switch(value: Union[bool, str]) -> str:
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    if isinstance(value, str) and value.strip().upper() in ("ON", "OFF"):
        return value.strip().upper()
    raise ValidationError(f"Expected ON/OFF, got {value!r}")


def render_integer(value: Any) -> str:
    if isinstance(value, bool):
        raise ValidationError(f"Expected an integer, got {value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Expected an integer, got {value!r}")
    if number < 0:
        raise ValidationError(f"Expected a non-negative integer, got {number}")
    return str(number)


def render_string(value: Any) -> str:
    if value is None:
        raise ValidationError("Expected a string, got None")
    return "'" + escape_string(str(value)) + "'"


def render_binlog_position(value: Tuple[str, Any]) -> str:
    try:
        file, position = value
    except (TypeError, ValueError):
        raise ValidationError("Expected (file, position)")
    if not file:
        raise ValidationError("Binlog file is required")
    return f"{render_string(file)} {render_integer(position)}"


RENDERERS = {
    ValueKind.SWITCH: render_switch,
    ValueKind.INTEGER: render_integer,
    ValueKind.STRING: render_string,
    ValueKind.BINLOG_POSITION: render_binlog_position,
}


def show_command(topic: Union[NimbusTopic, str]) -> str:
    return f"SHOW NIMBUS {NimbusTopic(topic).value}"


def set_command(key: Union[NimbusKey, str], value: Any) -> str:
    key = NimbusKey(key)
    return f"SET NIMBUS {key.value} = {RENDERERS[key.kind](value)}"


def join_csv(dbs: Union[str, Iterable[str]]) -> str:
    """Normalize an inclusion list to `a,b,c`; empty means all databases."""
    if isinstance(dbs, str):
        items = dbs.split(",")
    else:
        items = list(dbs)
    return ",".join(item.strip() for item in items if item and item.strip())
