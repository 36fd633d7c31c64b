"""Async SQLAlchemy engines, one per (connection, database) pair."""

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pgbrowse.config import Settings, get_settings
from tablesession.errors import ConnectivityError

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"


class EngineRegistry:
    """
    Lazily creates and caches engines.

    Connection ids map to SQLAlchemy URLs from settings (``default`` is
    ``DATABASE_URL``). Browsing another database on the same server reuses
    the URL with the database swapped, under its own engine and pool.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._urls: Dict[str, str] = {DEFAULT_CONNECTION: self.settings.DATABASE_URL}
        self._urls.update(self.settings.CONNECTIONS)
        self._engines: Dict[Tuple[str, str], AsyncEngine] = {}

    def register(self, connection_id: str, url: str) -> None:
        self._urls[connection_id] = url

    def connection_ids(self):
        return sorted(self._urls)

    def get_engine(self, connection_id: str, database: str) -> AsyncEngine:
        key = (connection_id, database)
        engine = self._engines.get(key)
        if engine is not None:
            return engine

        url = self._urls.get(connection_id)
        if url is None:
            raise ConnectivityError(f"Not connected: {connection_id}")

        engine = create_async_engine(
            make_url(url).set(database=database),
            echo=self.settings.DEBUG,
            pool_size=self.settings.POOL_SIZE,
            max_overflow=self.settings.MAX_OVERFLOW,
            pool_timeout=self.settings.POOL_TIMEOUT_SECONDS,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._engines[key] = engine
        logger.info(f"Created engine for {connection_id}:{database}")
        return engine

    async def dispose(self) -> None:
        """Close every pool."""
        for engine in self._engines.values():
            await engine.dispose()
        self._engines.clear()
