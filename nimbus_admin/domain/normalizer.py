from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel


class RowSet(BaseModel):
    """A SELECT-shaped driver result."""
    field_names: Optional[List[str]] = None
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class Acknowledgement(BaseModel):
    """A mutation acknowledgement (OK packet)."""
    affected_rows: int = 0
    insert_id: Optional[int] = None


class QueryResult(BaseModel):
    """
    Uniform envelope for every gateway call.

    Exactly one of `rows` / `affected_rows` is meaningful: a row set leaves
    `affected_rows` unset, an acknowledgement leaves `rows` and `columns` empty.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    duration_ms: int = 0
    affected_rows: Optional[int] = None
    current_database: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_unset(self, handler):
        # Drop only the optional envelope keys; NULL cells inside rows stay
        data = handler(self)
        for key in ("affected_rows", "affectedRows", "current_database", "currentDatabase"):
            if key in data and data[key] is None:
                del data[key]
        return data

    @property
    def first_row(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


RawResult = Union[RowSet, Acknowledgement, Sequence[Mapping[str, Any]], Mapping[str, Any]]


def _json_cell(value: Any) -> Any:
    # BINARY/BLOB cells come back as bytes; keep text, hex-encode the rest
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return "0x" + bytes(value).hex()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, timedelta):
        # MySQL TIME
        return str(value)
    return value


def _json_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _json_cell(v) for k, v in row.items()}


def _affected_rows_of(raw: Mapping[str, Any]) -> int:
    for key in ("affected_rows", "affectedRows"):
        if key in raw and raw[key] is not None:
            return int(raw[key])
    return 0


def normalize_result(
    raw: RawResult,
    duration_ms: int = 0,
    current_database: Optional[str] = None,
    field_names: Optional[List[str]] = None,
) -> QueryResult:
    """
    Fold either driver response shape into a QueryResult.

    Plain sequences of mappings are treated as row sets; plain mappings as
    OK packets carrying `affected_rows` (or `affectedRows`).
    """
    if isinstance(raw, Acknowledgement):
        return QueryResult(
            duration_ms=duration_ms,
            affected_rows=raw.affected_rows,
            current_database=current_database,
        )
    if isinstance(raw, Mapping):
        return QueryResult(
            duration_ms=duration_ms,
            affected_rows=_affected_rows_of(raw),
            current_database=current_database,
        )

    if isinstance(raw, RowSet):
        if raw.field_names is not None:
            field_names = raw.field_names
        rows = [_json_row(r) for r in raw.rows]
    else:
        rows = [_json_row(r) for r in raw]

    if field_names:
        columns = list(field_names)
    elif rows:
        columns = list(rows[0].keys())
    else:
        columns = []

    return QueryResult(
        columns=columns,
        rows=rows,
        duration_ms=duration_ms,
        current_database=current_database,
    )
