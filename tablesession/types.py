"""Data model shared by the table session engine and its collaborators."""

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Cell values: null, boolean, number or text. JSON objects and arrays pass
# through untouched and are never typed individually.
Scalar = Union[None, bool, int, float, str]
Cell = Union[Scalar, Dict[str, Any], List[Any]]
Row = List[Any]


class SortDirection(str, enum.Enum):
    """Sort direction enumeration."""

    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    """Single-column sort. A direction never exists without its column."""

    model_config = ConfigDict(frozen=True)

    column: str = Field(..., min_length=1)
    direction: SortDirection = SortDirection.ASC


class ColumnMeta(BaseModel):
    """Column information schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False


class QueryResult(BaseModel):
    """Column names plus positional rows, as returned by the executor."""

    columns: List[str]
    rows: List[Row]
    row_count: int
    execution_time_ms: int = 0


class TableTarget(BaseModel):
    """The table a session browses; sessions are registered under it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection_id: str = Field(..., min_length=1)
    database: str = Field(..., min_length=1)
    schema_name: str = Field(..., min_length=1, alias="schema")
    table: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{self.database}.{self.schema_name}.{self.table}"


class PageState(BaseModel):
    """Cached rows, count estimate and the generation they belong to."""

    rows: List[Row]
    total_count: Optional[int]
    generation: int


class RowView(BaseModel):
    """A cached row together with its identity string."""

    identity: str
    cells: Row


class SessionState(BaseModel):
    """Observable snapshot of a table session."""

    model_config = ConfigDict(populate_by_name=True)

    target: TableTarget
    columns: List[ColumnMeta]
    primary_key: List[str]
    editable: bool
    rows: List[RowView]
    total_count: Optional[int]
    has_more: bool
    filters: Dict[str, str]
    sort: Optional[SortSpec]
    selection: List[str]
    generation: int
    loading: bool
    loading_more: bool
    error: Optional[str] = None
    insert_error: Optional[str] = None
    delete_error: Optional[str] = None
    execution_time_ms: int = 0


class HistoryEntry(BaseModel):
    """A statement run from the query editor."""

    sql: str
    database: str
    executed_at: datetime
