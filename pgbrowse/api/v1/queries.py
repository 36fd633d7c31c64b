"""Query editor endpoints."""

from typing import List

from fastapi import APIRouter, Query, status

from pgbrowse.api.deps import Registry
from pgbrowse.schemas.query import QueryRun
from tablesession.types import HistoryEntry, QueryResult

router = APIRouter(prefix="/queries", tags=["queries"])


@router.post("/", response_model=QueryResult)
async def run_query(run: QueryRun, registry: Registry) -> QueryResult:
    """Run a free-form SQL statement."""
    editor = registry.editor(run.connection_id)
    return await editor.run(run.sql, run.database)


@router.get("/history", response_model=List[HistoryEntry])
async def get_history(
    registry: Registry,
    connection_id: str = Query(default="default", min_length=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> List[HistoryEntry]:
    """Statements run on a connection, newest first."""
    return registry.editor(connection_id).history()[:limit]


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(
    registry: Registry,
    connection_id: str = Query(default="default", min_length=1),
) -> None:
    """Forget the run history of a connection."""
    registry.editor(connection_id).clear_history()
