import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on any backend.

    Values are written as naive UTC and handed back with tzinfo=UTC, so SQLite
    (which keeps no offset) reads back the same aware value it was given.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime; use utcnow()")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    salt: str
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))


class UserSession(SQLModel, table=True):
    __tablename__ = "sessions"

    token: str = Field(primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    expires_at: datetime = Field(sa_column=Column(UTCDateTime, nullable=False, index=True))


class ConnectionProfile(SQLModel, table=True):
    __tablename__ = "connections"

    id: str = Field(primary_key=True)
    name: str
    host: str
    port: int
    username: str
    password: str = Field(default="")
    created_at: int = Field(default_factory=epoch_ms, index=True)  # epoch ms
