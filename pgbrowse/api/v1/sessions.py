"""Table session endpoints."""

from typing import List

from fastapi import APIRouter, status

from pgbrowse.api.deps import Registry, Session
from pgbrowse.core.exceptions import BadRequest
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
from tablesession.types import SessionState, TableTarget

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    target: TableTarget,
    registry: Registry,
) -> SessionResponse:
    """
    Open a browsing session for a table.

    Loads columns, primary key, the first page and the row count. Opening a
    table that already has a session returns that session.
    """
    session_id, session = await registry.open(target)
    return SessionResponse(id=session_id, state=session.state())


@router.get("/", response_model=List[SessionSummary])
async def list_sessions(registry: Registry) -> List[SessionSummary]:
    """List open sessions."""
    return [
        SessionSummary(
            id=session_id,
            target=session.target,
            rows_loaded=len(session.store),
            total_count=session.store.total_count,
        )
        for session_id, session in registry.items()
    ]


@router.get("/{session_id}", response_model=SessionState)
async def get_session_state(session: Session) -> SessionState:
    """Current state snapshot."""
    return session.state()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, session: Session, registry: Registry) -> None:
    """Close a session and drop its cache."""
    registry.close(session_id)


@router.put("/{session_id}/filters/{column}", response_model=SessionState)
async def set_filter(column: str, update: FilterUpdate, session: Session) -> SessionState:
    """
    Set one column filter.

    The refetch is debounced: the response reflects the pending state, and
    the new page shows up in a later snapshot.
    """
    session.set_filter(column, update.value)
    return session.state()


@router.delete("/{session_id}/filters", response_model=SessionState)
async def clear_filters(session: Session) -> SessionState:
    """Remove every filter and reload."""
    await session.clear_filters()
    return session.state()


@router.put("/{session_id}/sort", response_model=SessionState)
async def set_sort(update: SortUpdate, session: Session) -> SessionState:
    """Sort by a column, or clear the sort."""
    await session.set_sort(update.column, update.direction)
    return session.state()


@router.post("/{session_id}/sort/{column}/toggle", response_model=SessionState)
async def toggle_sort(column: str, session: Session) -> SessionState:
    """Cycle a column through ascending, descending and unsorted."""
    await session.toggle_sort(column)
    return session.state()


@router.post("/{session_id}/load-more", response_model=LoadMoreResponse)
async def load_more(session: Session) -> LoadMoreResponse:
    """Append the next page."""
    appended = await session.load_more()
    return LoadMoreResponse(appended=appended, state=session.state())


@router.put("/{session_id}/selection", response_model=SessionState)
async def update_selection(update: SelectionUpdate, session: Session) -> SessionState:
    """Select or deselect rows by identity, or select every loaded row."""
    if update.all:
        if update.selected:
            session.select_all()
        else:
            session.clear_selection()
        return session.state()

    if not update.identities:
        raise BadRequest("No row identities given")
    for identity in update.identities:
        session.select(identity, update.selected)
    return session.state()


@router.delete("/{session_id}/selection", response_model=SessionState)
async def clear_selection(session: Session) -> SessionState:
    """Deselect everything."""
    session.clear_selection()
    return session.state()


@router.patch("/{session_id}/cells", response_model=CellUpdateResponse)
async def update_cell(update: CellUpdate, session: Session) -> CellUpdateResponse:
    """Write one cell from raw editor text."""
    value = await session.update_cell(update.identity, update.column, update.value)
    return CellUpdateResponse(identity=update.identity, column=update.column, value=value)


@router.post(
    "/{session_id}/rows",
    response_model=SessionState,
    status_code=status.HTTP_201_CREATED,
)
async def insert_row(draft: RowInsert, session: Session) -> SessionState:
    """Insert a row from raw draft values and reload the first page."""
    await session.insert_row(draft.values)
    return session.state()


@router.delete("/{session_id}/rows", response_model=DeleteResponse)
async def delete_rows(session: Session) -> DeleteResponse:
    """Delete the selected rows."""
    removed = await session.delete_selected()
    return DeleteResponse(removed=removed, state=session.state())
