"""Executes table-session SQL against PostgreSQL through SQLAlchemy."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, time as dt_time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine

from pgbrowse.database import EngineRegistry
from tablesession.compiler import QueryCompiler, Statement
from tablesession.errors import ConnectivityError, QueryError
from tablesession.types import ColumnMeta, QueryResult

logger = logging.getLogger(__name__)

COLUMNS_QUERY = text("""
    SELECT
        c.column_name AS name,
        c.data_type,
        c.is_nullable = 'YES' AS is_nullable,
        EXISTS (
            SELECT 1
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.table_constraints tc
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND kcu.table_schema = c.table_schema
              AND kcu.table_name = c.table_name
              AND kcu.column_name = c.column_name
        ) AS is_primary_key
    FROM information_schema.columns c
    WHERE c.table_schema = :schema AND c.table_name = :table
    ORDER BY c.ordinal_position
""")

PRIMARY_KEY_QUERY = text("""
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON kcu.constraint_name = tc.constraint_name
     AND kcu.table_schema = tc.table_schema
     AND kcu.table_name = tc.table_name
    WHERE tc.constraint_type = 'PRIMARY KEY'
      AND tc.table_schema = :schema
      AND tc.table_name = :table
    ORDER BY kcu.ordinal_position
""")


def to_cell(value: Any) -> Any:
    """Convert a driver value into a JSON-friendly cell."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID, timedelta)):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, dict):
        return {str(k): to_cell(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_cell(v) for v in value]
    return str(value)


class DatabaseExecutor:
    """
    Remote executor for table sessions backed by SQLAlchemy async engines.

    Connectivity failures (unreachable host, pool timeout, dropped
    connection) raise ``ConnectivityError``; anything the server rejects
    raises ``QueryError``.
    """

    def __init__(self, engines: EngineRegistry):
        self.engines = engines

    def _engine(self, connection_id: str, database: str) -> AsyncEngine:
        return self.engines.get_engine(connection_id, database)

    @asynccontextmanager
    async def _translate_errors(self, action: str):
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"{action} failed to reach the database: {e}")
            raise ConnectivityError(str(e.orig or e)) from e
        except DBAPIError as e:
            logger.info(f"{action} rejected: {e}")
            raise QueryError(str(e.orig or e)) from e
        except (PoolTimeoutError, OSError, TimeoutError) as e:
            logger.warning(f"{action} failed to reach the database: {e}")
            raise ConnectivityError(str(e)) from e

    async def execute_query(
        self, connection_id: str, database: str, sql: str
    ) -> QueryResult:
        """Run raw SQL text and return column names plus positional rows."""
        engine = self._engine(connection_id, database)
        start = time.perf_counter()
        async with self._translate_errors("Query"):
            async with engine.begin() as conn:
                # Raw driver SQL: filter literals may contain ':' or '%'
                result = await conn.exec_driver_sql(sql)
                if result.returns_rows:
                    columns = list(result.keys())
                    rows = [[to_cell(v) for v in row] for row in result.fetchall()]
                    row_count = len(rows)
                else:
                    columns, rows = [], []
                    row_count = max(result.rowcount, 0)

        execution_time_ms = int((time.perf_counter() - start) * 1000)
        return QueryResult(
            columns=columns,
            rows=rows,
            row_count=row_count,
            execution_time_ms=execution_time_ms,
        )

    async def get_columns(
        self, connection_id: str, database: str, schema: str, table: str
    ) -> List[ColumnMeta]:
        engine = self._engine(connection_id, database)
        async with self._translate_errors("Column lookup"):
            async with engine.connect() as conn:
                result = await conn.execute(
                    COLUMNS_QUERY, {"schema": schema, "table": table}
                )
                return [
                    ColumnMeta(
                        name=row.name,
                        data_type=row.data_type,
                        is_nullable=bool(row.is_nullable),
                        is_primary_key=bool(row.is_primary_key),
                    )
                    for row in result
                ]

    async def get_primary_key_columns(
        self, connection_id: str, database: str, schema: str, table: str
    ) -> List[str]:
        """Primary key columns in constraint order; empty for views and keyless tables."""
        engine = self._engine(connection_id, database)
        async with self._translate_errors("Primary key lookup"):
            async with engine.connect() as conn:
                result = await conn.execute(
                    PRIMARY_KEY_QUERY, {"schema": schema, "table": table}
                )
                return [row[0] for row in result]

    async def _column_types(
        self, connection_id: str, database: str, schema: str, table: str
    ) -> Dict[str, str]:
        columns = await self.get_columns(connection_id, database, schema, table)
        return {column.name: column.data_type for column in columns}

    async def _write(
        self, connection_id: str, database: str, statement: Statement, action: str
    ) -> int:
        engine = self._engine(connection_id, database)
        async with self._translate_errors(action):
            async with engine.begin() as conn:
                result = await conn.execute(text(statement.sql), statement.params)
                return result.rowcount

    async def insert_row(
        self,
        connection_id: str,
        database: str,
        schema: str,
        table: str,
        columns: Sequence[str],
        values: Sequence[Any],
        column_types: Sequence[str],
    ) -> None:
        statement = QueryCompiler(schema, table).insert(columns, values, column_types)
        await self._write(connection_id, database, statement, "Insert")

    async def delete_rows(
        self,
        connection_id: str,
        database: str,
        schema: str,
        table: str,
        primary_key_columns: Sequence[str],
        primary_key_values_list: Sequence[Sequence[Any]],
    ) -> None:
        types = await self._column_types(connection_id, database, schema, table)
        statement = QueryCompiler(schema, table).delete_rows(
            primary_key_columns,
            [types.get(column) for column in primary_key_columns],
            primary_key_values_list,
        )
        deleted = await self._write(connection_id, database, statement, "Delete")
        logger.info(f"Deleted {deleted} row(s) from {schema}.{table}")

    async def update_cell(
        self,
        connection_id: str,
        database: str,
        schema: str,
        table: str,
        column: str,
        primary_key_columns: Sequence[str],
        primary_key_values: Sequence[Any],
        new_value: Any,
    ) -> None:
        types = await self._column_types(connection_id, database, schema, table)
        statement = QueryCompiler(schema, table).update_cell(
            column,
            types.get(column),
            new_value,
            primary_key_columns,
            [types.get(pk) for pk in primary_key_columns],
            primary_key_values,
        )
        updated = await self._write(connection_id, database, statement, "Update")
        if updated == 0:
            raise QueryError("No row matches the primary key; it may have been deleted")
