"""Pydantic schemas for request/response validation."""

from pgbrowse.schemas.query import QueryRun
from pgbrowse.schemas.table import (
    CellUpdate,
    CellUpdateResponse,
    DeleteResponse,
    FilterUpdate,
    LoadMoreResponse,
    RowInsert,
    SelectionUpdate,
    SessionResponse,
    SessionSummary,
    SortUpdate,
)

__all__ = [
    "QueryRun",
    "CellUpdate",
    "CellUpdateResponse",
    "DeleteResponse",
    "FilterUpdate",
    "LoadMoreResponse",
    "RowInsert",
    "SelectionUpdate",
    "SessionResponse",
    "SessionSummary",
    "SortUpdate",
]
