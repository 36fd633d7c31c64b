"""Table session request and response schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tablesession.types import SessionState, SortDirection, TableTarget


class SessionResponse(BaseModel):
    """Session id plus the current state snapshot."""

    id: str
    state: SessionState


class SessionSummary(BaseModel):
    """Open session listing entry."""

    id: str
    target: TableTarget
    rows_loaded: int
    total_count: Optional[int]


class FilterUpdate(BaseModel):
    """Raw filter text; blank removes the filter."""

    value: Optional[str] = None


class SortUpdate(BaseModel):
    """Sort column, or null to clear the sort."""

    column: Optional[str] = Field(default=None, min_length=1)
    direction: SortDirection = SortDirection.ASC


class SelectionUpdate(BaseModel):
    """Row identities to select or deselect."""

    identities: List[str] = Field(default_factory=list)
    selected: bool = True
    all: bool = False


class CellUpdate(BaseModel):
    """Raw text typed into a cell editor."""

    identity: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    value: str = ""


class CellUpdateResponse(BaseModel):
    """Value written after coercion."""

    identity: str
    column: str
    value: Any


class RowInsert(BaseModel):
    """Raw draft values keyed by column; blank values are left out."""

    values: Dict[str, Optional[str]] = Field(default_factory=dict)


class LoadMoreResponse(BaseModel):
    """Rows appended by a load-more request."""

    appended: int
    state: SessionState


class DeleteResponse(BaseModel):
    """Rows removed from the cache after a delete."""

    removed: int
    state: SessionState
