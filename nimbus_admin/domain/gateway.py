import logging
import time
from typing import Optional, Union

import pymysql
from pymysql.constants import CLIENT
from pymysql.cursors import DictCursor

from nimbus_admin.core.errors import NotFoundError, UpstreamError, ValidationError
from nimbus_admin.core.metrics import GatewayMetrics
from nimbus_admin.domain.normalizer import Acknowledgement, QueryResult, RowSet, normalize_result
from nimbus_admin.domain.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

CONTEXT_PROBE_SQL = "SELECT DATABASE() AS current_database"


def _upstream(exc: pymysql.MySQLError) -> UpstreamError:
    # PyMySQL errors carry (errno, message)
    if len(exc.args) >= 2:
        return UpstreamError(str(exc.args[1]), code=exc.args[0])
    return UpstreamError(str(exc) or exc.__class__.__name__)


class CommandGateway:
    """
    Executes SQL and control commands against a target engine.

    Every call opens its own connection and closes it before returning:
    connect -> execute -> context probe -> close. Nothing is pooled.
    """
    def __init__(
        self,
        registry: ConnectionRegistry,
        connect_timeout: int = 5,
        query_timeout: int = 300,
        default_database: str = "information_schema",
        metrics: Optional[GatewayMetrics] = None,
    ):
        self.registry = registry
        self.connect_timeout = connect_timeout
        self.query_timeout = query_timeout
        self.default_database = default_database
        self.metrics = metrics

    def _connect(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: Optional[str] = None,
        profile_id: Optional[str] = None,
    ):
        try:
            return pymysql.connect(
                host=host,
                port=int(port),
                user=user,
                password=password or "",
                database=database or self.default_database,
                charset="utf8mb4",
                connect_timeout=self.connect_timeout,
                read_timeout=self.query_timeout,
                write_timeout=self.query_timeout,
                autocommit=True,
                client_flag=CLIENT.MULTI_STATEMENTS,
                cursorclass=DictCursor,
            )
        except pymysql.MySQLError as e:
            logger.error("Connect to %s:%s failed: %s", host, port, e)
            if self.metrics:
                self.metrics.record_error(profile_id, e.args[0] if e.args else None)
            raise _upstream(e)

    @staticmethod
    def _close(conn):
        try:
            conn.close()
        except pymysql.MySQLError as e:
            # Already closed by the server or by a timeout
            logger.debug("Ignoring close error: %s", e)

    @staticmethod
    def _capture(cursor) -> Union[RowSet, Acknowledgement]:
        if cursor.description:
            return RowSet(
                field_names=[d[0] for d in cursor.description],
                rows=list(cursor.fetchall()),
            )
        return Acknowledgement(affected_rows=max(cursor.rowcount, 0), insert_id=cursor.lastrowid or None)

    @staticmethod
    def _probe_current_database(cursor) -> Optional[str]:
        try:
            cursor.execute(CONTEXT_PROBE_SQL)
            row = cursor.fetchone()
        except pymysql.MySQLError as e:
            logger.debug("Context probe failed: %s", e)
            return None
        if not row:
            return None
        value = next(iter(row.values()), None)
        return str(value) if value is not None else None

    def execute(self, profile_id: str, statement: str, database: Optional[str] = None) -> QueryResult:
        if not profile_id or not statement or not statement.strip():
            raise ValidationError("Missing connectionId or sql")

        profile = self.registry.get(profile_id)
        if profile is None:
            raise NotFoundError("Connection config not found")

        conn = self._connect(
            profile.host, profile.port, profile.username, profile.password, database, profile_id=profile_id
        )
        try:
            start = time.perf_counter()
            with conn.cursor() as cursor:
                try:
                    cursor.execute(statement)
                    # Drain every result set; the last statement shapes the envelope
                    raw = self._capture(cursor)
                    while cursor.nextset():
                        raw = self._capture(cursor)
                except pymysql.MySQLError as e:
                    logger.warning("Statement failed on '%s': %s", profile_id, e)
                    if self.metrics:
                        self.metrics.record_error(profile_id, e.args[0] if e.args else None)
                    raise _upstream(e)
                current_database = self._probe_current_database(cursor)
            duration_ms = round((time.perf_counter() - start) * 1000)
        finally:
            self._close(conn)

        result = normalize_result(raw, duration_ms=duration_ms, current_database=current_database)
        if self.metrics:
            self.metrics.record(profile_id, len(result.rows), duration_ms)
        return result

    def probe(self, host: str, port: int, user: str, password: str = "") -> list:
        """Reachability check against ad hoc credentials, bypassing the registry."""
        if not host or not port or not user:
            raise ValidationError("Missing host, port or user")

        conn = self._connect(host, port, user, password)
        try:
            with conn.cursor() as cursor:
                try:
                    cursor.execute("SELECT 1 AS val")
                    return list(cursor.fetchall())
                except pymysql.MySQLError as e:
                    raise _upstream(e)
        finally:
            self._close(conn)
