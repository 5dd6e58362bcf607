import logging
from typing import Iterable, List, Union

from nimbus_admin.core.errors import PartialUpdateError, UpstreamError, ValidationError
from nimbus_admin.domain.gateway import CommandGateway
from nimbus_admin.domain.nimbus.commands import (
    PERFORMANCE_KEYS,
    NimbusKey,
    NimbusTopic,
    join_csv,
    set_command,
    show_command,
)
from nimbus_admin.domain.nimbus.models import (
    BinlogPosition,
    MySqlSourceConfig,
    MySqlSourceUpdate,
    PerformanceConfig,
    ReplicationStatus,
    parse_row,
)
from nimbus_admin.domain.normalizer import QueryResult

logger = logging.getLogger(__name__)

SOURCE_FIELDS = ("mysql_host", "mysql_port", "mysql_user", "mysql_password", "mysql_server_id")


class NimbusSettings:
    """
    Typed configuration reads and writes for one connection profile.
    Every command goes through the gateway; nothing is cached.
    """
    def __init__(self, gateway: CommandGateway, connection_id: str):
        self.gateway = gateway
        self.connection_id = connection_id

    def _run(self, sql: str) -> QueryResult:
        return self.gateway.execute(self.connection_id, sql)

    def _show(self, topic: NimbusTopic) -> QueryResult:
        return self._run(show_command(topic))

    def _set(self, key: NimbusKey, value):
        self._run(set_command(key, value))

    # --- Replication ---

    def get_replication_status(self) -> ReplicationStatus:
        return parse_row(ReplicationStatus, self._show(NimbusTopic.REPLICATION).first_row, "replication status")

    def set_full_replication(self, enable: bool):
        self._set(NimbusKey.FULL_REPLICATION, enable)

    def set_incremental_replication(self, enable: bool):
        self._set(NimbusKey.INCREMENTAL_REPLICATION, enable)

    # --- Performance ---

    def get_performance_config(self) -> PerformanceConfig:
        return parse_row(PerformanceConfig, self._show(NimbusTopic.PERFORMANCE).first_row, "performance config")

    def update_performance_config(self, key: str, value: int):
        nimbus_key = NimbusKey.from_field(key)
        if nimbus_key not in PERFORMANCE_KEYS:
            raise ValidationError(f"Not a performance setting: {key}")
        self._set(nimbus_key, value)

    # --- Binlog ---

    def get_binlog_position(self) -> BinlogPosition:
        return parse_row(BinlogPosition, self._show(NimbusTopic.BINLOG).first_row, "binlog position")

    def set_binlog_position(self, file: str, position: int):
        self._set(NimbusKey.BINLOG_POSITION, (file, position))

    # --- Source ---

    def get_source_config(self) -> MySqlSourceConfig:
        return parse_row(MySqlSourceConfig, self._show(NimbusTopic.MYSQL).first_row, "mysql source config")

    def update_source_config(self, update: MySqlSourceUpdate) -> List[str]:
        """
        One SET per non-empty field, in a fixed order. Not transactional:
        a failure leaves earlier fields applied and is reported through
        PartialUpdateError.
        """
        pending = [(f, getattr(update, f)) for f in SOURCE_FIELDS if getattr(update, f)]
        # Validate everything before the first write
        commands = [(f, set_command(NimbusKey.from_field(f), v)) for f, v in pending]

        applied = []
        for field, sql in commands:
            try:
                self._run(sql)
            except UpstreamError as e:
                logger.warning(
                    "Source config update on '%s' stopped at %s; already applied: %s",
                    self.connection_id, field, applied or "none",
                )
                raise PartialUpdateError(e.message, code=e.code, applied=applied, failed=field)
            applied.append(field)
        return applied

    # --- Included DBs ---

    def get_included_dbs(self) -> str:
        row = self._show(NimbusTopic.INCLUDED_DBS).first_row
        if not row:
            return ""
        value = next(iter(row.values()), None)
        return str(value) if value else ""

    def set_included_dbs(self, dbs: Union[str, Iterable[str]]):
        self._set(NimbusKey.INCLUDED_DBS, join_csv(dbs))

    # --- Schema sync ---

    def get_schema_sync(self) -> bool:
        # Older engines do not know this topic; treat as enabled
        try:
            row = self._show(NimbusTopic.SCHEMA_SYNC).first_row
        except UpstreamError as e:
            logger.info("SHOW NIMBUS SCHEMA_SYNC unsupported on '%s' (%s); defaulting to ON", self.connection_id, e.message)
            return True
        if not row:
            return True
        value = next(iter(row.values()), None)
        if isinstance(value, str):
            return value.strip().upper() not in ("OFF", "0", "FALSE")
        return bool(value) if value is not None else True

    def set_schema_sync(self, enable: bool):
        self._set(NimbusKey.SYNC_SCHEMA, enable)
