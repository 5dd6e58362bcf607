import re
from datetime import timedelta

import pymysql
import pytest
from fastapi.testclient import TestClient

from nimbus_admin.api.app import create_app
from nimbus_admin.core.config import Settings
from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.security import PasswordHasher
from nimbus_admin.domain.credentials import CredentialStore
from nimbus_admin.domain.gateway import CommandGateway
from nimbus_admin.domain.registry import ConnectionRegistry, ConnectionUpsert
from nimbus_admin.domain.sessions import SessionAuthenticator

TEST_ROUNDS = 1000


# --- Fake NIMBUS engine speaking through a PyMySQL-shaped API ---

def split_statements(sql: str):
    parts, buf, quote = [], [], None
    for ch in sql:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            buf.append(ch)
        elif ch == ";":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))
    return [p.strip() for p in parts if p.strip()]


def _description(columns):
    return tuple((c, None, None, None, None, None, None) for c in columns)


SET_TARGETS = {
    "FULL_REPLICATION": ("REPLICATION", "full_replication"),
    "INCREMENTAL_REPLICATION": ("REPLICATION", "incremental_replication"),
    "BINLOG_BATCH_SIZE": ("PERFORMANCE", "binlog_batch_size"),
    "FETCH_BATCH_SIZE": ("PERFORMANCE", "fetch_batch_size"),
    "FLUSH_INTERVAL_MS": ("PERFORMANCE", "flush_interval_ms"),
    "MYSQL_HOST": ("MYSQL", "mysql_host"),
    "MYSQL_PORT": ("MYSQL", "mysql_port"),
    "MYSQL_USER": ("MYSQL", "mysql_user"),
    "MYSQL_PASSWORD": ("MYSQL", "mysql_password"),
    "MYSQL_SERVER_ID": ("MYSQL", "mysql_server_id"),
    "INCLUDED_DBS": ("INCLUDED_DBS", "included_dbs"),
    "SYNC_SCHEMA": ("SCHEMA_SYNC", "schema_sync"),
}


def _unquote(value: str):
    value = value.strip()
    if value.startswith("'") and value.endswith("'"):
        return value[1:-1].replace("\\'", "'").replace("\\\\", "\\")
    if value.isdigit():
        return int(value)
    return value


class FakeEngine:
    def __init__(self):
        self.databases = {"information_schema", "db1", "db2"}
        self.nimbus = {
            "REPLICATION": {
                "full_replication": "ON",
                "incremental_replication": "OFF",
                "full_running": "Running",
                "incremental_running": "Stopped",
            },
            "PERFORMANCE": {"binlog_batch_size": 1000, "fetch_batch_size": 500, "flush_interval_ms": 200},
            "BINLOG": {"file": "mysql-bin.000001", "position": 4, "server_id": 1, "timestamp": "2024-01-01 00:00:00"},
            "MYSQL": {
                "mysql_host": "10.0.0.9",
                "mysql_port": 3306,
                "mysql_user": "repl",
                "mysql_password": "secret",
                "mysql_server_id": 101,
            },
            "INCLUDED_DBS": {"included_dbs": ""},
            "SCHEMA_SYNC": {"schema_sync": "ON"},
        }
        self.supports_schema_sync = True
        self.probe_fails = False
        self.refuse_connect = None
        self.fail_on = {}
        self.affected_rows = 3
        self.tables = {}
        self.connections = []
        self.executed = []

    def connect(self, **kwargs):
        if self.refuse_connect:
            raise pymysql.err.OperationalError(*self.refuse_connect)
        conn = FakeConnection(self, kwargs)
        self.connections.append(conn)
        return conn

    def run(self, conn, statement):
        self.executed.append(statement)
        upper = statement.upper()
        for prefix, (code, msg) in self.fail_on.items():
            if upper.startswith(prefix.upper()):
                raise pymysql.err.OperationalError(code, msg)

        m = re.match(r"USE\s+`?(\w+)`?$", statement, re.IGNORECASE)
        if m:
            if m.group(1) not in self.databases:
                raise pymysql.err.OperationalError(1049, f"Unknown database '{m.group(1)}'")
            conn.database = m.group(1)
            return None, [], 0

        if upper.startswith("SELECT DATABASE()"):
            if self.probe_fails:
                raise pymysql.err.OperationalError(2013, "Lost connection to MySQL server during query")
            return _description(["current_database"]), [{"current_database": conn.database}], 1

        m = re.match(r"SELECT\s+1(?:\s+AS\s+(\w+))?$", statement, re.IGNORECASE)
        if m:
            col = m.group(1) or "1"
            return _description([col]), [{col: 1}], 1

        m = re.match(r"SELECT\s+\*\s+FROM\s+`?(\w+)`?$", statement, re.IGNORECASE)
        if m and m.group(1) in self.tables:
            columns, rows = self.tables[m.group(1)]
            return _description(columns), [dict(r) for r in rows], len(rows)

        m = re.match(r"SHOW\s+NIMBUS\s+(\w+)$", statement, re.IGNORECASE)
        if m:
            topic = m.group(1).upper()
            if topic == "SCHEMA_SYNC" and not self.supports_schema_sync:
                raise pymysql.err.ProgrammingError(1064, "You have an error in your SQL syntax near 'SCHEMA_SYNC'")
            row = self.nimbus.get(topic)
            if not row:
                return _description(["value"]), [], 0
            return _description(list(row)), [dict(row)], 1

        m = re.match(r"SET\s+NIMBUS\s+(\w+)\s*=\s*(.+)$", statement, re.IGNORECASE | re.DOTALL)
        if m:
            key, value = m.group(1).upper(), m.group(2)
            if key == "BINLOG_POSITION":
                bm = re.match(r"'(.*)'\s+(\d+)$", value.strip())
                self.nimbus["BINLOG"]["file"] = bm.group(1)
                self.nimbus["BINLOG"]["position"] = int(bm.group(2))
                return None, [], 0
            topic, column = SET_TARGETS[key]
            self.nimbus[topic][column] = _unquote(value)
            return None, [], 0

        if upper.startswith(("UPDATE", "INSERT", "DELETE")):
            return None, [], self.affected_rows

        raise pymysql.err.ProgrammingError(1064, f"You have an error in your SQL syntax near '{statement[:20]}'")


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._pending = []
        self._rows = []
        self.description = None
        self.rowcount = -1
        self.lastrowid = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def _advance(self):
        statement = self._pending.pop(0)
        self.description, self._rows, self.rowcount = self.conn.engine.run(self.conn, statement)

    def execute(self, sql):
        if self.conn.closed:
            raise pymysql.err.InterfaceError(0, "")
        self._pending = split_statements(sql)
        self._advance()
        return self.rowcount

    def nextset(self):
        if not self._pending:
            return None
        self._advance()
        return True

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def close(self):
        self._pending = []


class FakeConnection:
    def __init__(self, engine, kwargs):
        self.engine = engine
        self.kwargs = kwargs
        self.database = kwargs.get("database")
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        if self.closed:
            raise pymysql.err.Error("Already closed")
        self.closed = True


@pytest.fixture
def fake_engine(monkeypatch):
    engine = FakeEngine()
    monkeypatch.setattr("nimbus_admin.domain.gateway.pymysql.connect", engine.connect)
    return engine


# --- Stores ---

@pytest.fixture
def app_db(tmp_path):
    db = AppDatabase(f"sqlite:///{tmp_path / 'app.db'}")
    db.init_metadata_tables()
    yield db
    db.dispose()


@pytest.fixture
def credentials(app_db):
    return CredentialStore(app_db, PasswordHasher(TEST_ROUNDS))


@pytest.fixture
def authenticator(app_db, credentials):
    return SessionAuthenticator(app_db, credentials, timedelta(hours=24))


@pytest.fixture
def registry(app_db):
    return ConnectionRegistry(app_db)


@pytest.fixture
def profile(registry):
    registry.upsert(ConnectionUpsert(id="c1", name="Primary", host="10.0.0.1", port=3306, username="root"))
    return registry.get("c1")


@pytest.fixture
def gateway(registry, fake_engine):
    return CommandGateway(registry, connect_timeout=5, query_timeout=30)


# --- HTTP ---

@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        APP_DB_URL=f"sqlite:///{tmp_path / 'api.db'}",
        PASSWORD_HASH_ROUNDS=TEST_ROUNDS,
        DEFAULT_ADMIN_USERNAME="admin",
        DEFAULT_ADMIN_PASSWORD="admin",
    )


@pytest.fixture
def client(test_settings, fake_engine):
    app = create_app(test_settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}
