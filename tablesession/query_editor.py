"""Free-form SQL runner with an in-memory history of executed statements."""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional

from tablesession.errors import SessionError, ValidationError
from tablesession.remote import RemoteExecutor
from tablesession.types import HistoryEntry, QueryResult

logger = logging.getLogger("tablesession")

DEFAULT_MAX_HISTORY = 200


class QueryEditor:
    """
    Runs statements typed by the user against one connection.

    The last result or error is kept for display. Every statement that ran
    successfully is recorded, newest first, up to ``max_history`` entries.
    """

    def __init__(
        self,
        remote: RemoteExecutor,
        connection_id: str,
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self.remote = remote
        self.connection_id = connection_id
        self.result: Optional[QueryResult] = None
        self.error: Optional[str] = None
        self.running = False
        self._history: Deque[HistoryEntry] = deque(maxlen=max_history)

    async def run(self, sql: str, database: str) -> QueryResult:
        """Execute one statement; raises the remote error after recording it."""
        statement = sql.strip()
        if not statement:
            raise ValidationError("Nothing to run")

        self.running = True
        self.error = None
        try:
            result = await self.remote.execute_query(
                self.connection_id, database, statement
            )
        except SessionError as e:
            self.error = str(e)
            self.result = None
            logger.warning(f"Query on {database} failed: {e}")
            raise
        finally:
            self.running = False

        self.result = result
        self._history.appendleft(
            HistoryEntry(
                sql=statement,
                database=database,
                executed_at=datetime.now(timezone.utc),
            )
        )
        logger.info(
            f"Query on {database} returned {result.row_count} rows "
            f"in {result.execution_time_ms}ms"
        )
        return result

    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
