"""Open table sessions and query editors, owned per application."""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Tuple

from pgbrowse.config import Settings, get_settings
from tablesession.controller import SessionController
from tablesession.query_editor import QueryEditor
from tablesession.remote import RemoteExecutor
from tablesession.types import TableTarget

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Keeps one session per table target and one query editor per connection.

    Sessions never share state; opening a target that is already open hands
    back the existing session.
    """

    def __init__(self, remote: RemoteExecutor, settings: Optional[Settings] = None):
        self.remote = remote
        self.settings = settings or get_settings()
        self._sessions: Dict[str, SessionController] = {}
        self._by_target: Dict[TableTarget, str] = {}
        self._editors: Dict[str, QueryEditor] = {}
        self._open_locks: Dict[TableTarget, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, target: TableTarget) -> Tuple[str, SessionController]:
        """Open (or reuse) the session for a table and load its first page."""
        # Concurrent opens of one target wait for the first and share its session
        lock = self._open_locks.setdefault(target, asyncio.Lock())
        async with lock:
            session_id = self._by_target.get(target)
            if session_id is not None:
                return session_id, self._sessions[session_id]
            return await self._open_new(target)

    async def _open_new(self, target: TableTarget) -> Tuple[str, SessionController]:
        session = SessionController(
            target,
            self.remote,
            page_size=self.settings.PAGE_SIZE,
            debounce_seconds=self.settings.FILTER_DEBOUNCE_MS / 1000,
        )
        # Raises on failure; nothing is registered then
        await session.open()

        session_id = uuid.uuid4().hex
        self._sessions[session_id] = session
        self._by_target[target] = session_id
        logger.info(f"Session {session_id} opened for {target}")
        return session_id, session

    def get(self, session_id: str) -> Optional[SessionController]:
        return self._sessions.get(session_id)

    def items(self) -> List[Tuple[str, SessionController]]:
        return list(self._sessions.items())

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        self._by_target.pop(session.target, None)
        session.close()
        logger.info(f"Session {session_id} closed")
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def editor(self, connection_id: str) -> QueryEditor:
        """Query editor for a connection, created on first use."""
        editor = self._editors.get(connection_id)
        if editor is None:
            editor = QueryEditor(
                self.remote, connection_id, max_history=self.settings.MAX_HISTORY
            )
            self._editors[connection_id] = editor
        return editor
