from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Success(ApiModel):
    success: bool = True


# --- Auth Schemas ---
class LoginRequest(ApiModel):
    username: str
    password: str


class UserOut(ApiModel):
    id: int
    username: str
    created_at: datetime


class LoginResponse(ApiModel):
    token: str
    user: UserOut


# --- User Schemas ---
class UserCreate(ApiModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(ApiModel):
    id: int
    username: str
    password: Optional[str] = None


# --- Connection Schemas ---
class ConnectionOut(ApiModel):
    id: str
    name: str
    host: str
    port: int
    username: str
    password: str
    created_at: int


# --- Query Schemas ---
class QueryRequest(ApiModel):
    connection_id: str
    sql: str
    database: Optional[str] = None


class ProbeRequest(ApiModel):
    host: str
    port: int
    user: str
    password: str = ""


class ProbeResponse(ApiModel):
    success: bool
    message: str
    data: List[Any] = []


# --- Nimbus Settings Schemas ---
class SwitchRequest(ApiModel):
    enabled: bool


class PerformanceUpdate(ApiModel):
    key: str
    value: int


class BinlogUpdate(ApiModel):
    file: str
    position: int


class IncludedDbs(ApiModel):
    included_dbs: Union[str, List[str]] = ""


class SchemaSync(ApiModel):
    enabled: bool


class SourceUpdateResult(ApiModel):
    success: bool = True
    applied: List[str] = []
