"""Pytest configuration and fixtures."""

import asyncio
import re
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pgbrowse.api.deps import get_registry
from pgbrowse.config import Settings
from pgbrowse.main import app
from pgbrowse.services.registry import SessionRegistry
from tablesession.controller import SessionController
from tablesession.errors import QueryError
from tablesession.types import ColumnMeta, QueryResult, TableTarget

SELECT_RE = re.compile(
    r'^SELECT (?P<what>\*|COUNT\(\*\)) FROM "(?P<schema>(?:[^"]|"")+)"\."(?P<table>(?:[^"]|"")+)"'
    r"(?: WHERE (?P<where>.*?))?"
    r'(?: ORDER BY "(?P<sort>(?:[^"]|"")+)" (?P<direction>ASC|DESC))?'
    r"(?: LIMIT (?P<limit>\d+) OFFSET (?P<offset>\d+))?$"
)
ILIKE_RE = re.compile(r"^\"(?P<column>(?:[^\"]|\"\")+)\"::text ILIKE '%(?P<text>(?:[^']|'')*)%'$")
NULL_RE = re.compile(r'^"(?P<column>(?:[^"]|"")+)" IS (?P<negate>NOT )?NULL$')

ORDER_COLUMNS = [
    ColumnMeta(name="id", data_type="integer", is_nullable=False, is_primary_key=True),
    ColumnMeta(name="status", data_type="text"),
    ColumnMeta(name="customer", data_type="character varying"),
    ColumnMeta(name="amount", data_type="double precision"),
    ColumnMeta(name="note", data_type="text"),
]
STATUSES = ["active", "pending", "cancelled"]


def make_orders(count: int = 250) -> List[List[Any]]:
    return [
        [
            i,
            STATUSES[i % 3],
            f"customer {i % 17}",
            round(i * 1.5, 2),
            None if i % 5 == 0 else f"note {i}",
        ]
        for i in range(1, count + 1)
    ]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FakeRemote:
    """
    In-memory stand-in for the database side of a table session.

    Understands the SELECT statements the query compiler emits, records every
    call, and can be told to fail or to answer slowly.
    """

    def __init__(
        self,
        columns: Sequence[ColumnMeta] = ORDER_COLUMNS,
        rows: Optional[List[List[Any]]] = None,
        primary_key: Optional[List[str]] = None,
    ):
        self.columns = list(columns)
        self.rows = [list(r) for r in (rows if rows is not None else make_orders())]
        self.primary_key = (
            primary_key
            if primary_key is not None
            else [c.name for c in self.columns if c.is_primary_key]
        )
        self.queries: List[str] = []
        self.calls: List[tuple] = []
        self.latency: Callable[[str], float] = lambda sql: 0.0
        self.fail_with: Optional[Exception] = None
        self.fail_writes_with: Optional[Exception] = None

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]

    def page_queries(self) -> List[str]:
        return [q for q in self.queries if q.startswith("SELECT *")]

    async def _maybe_fail(self, writing: bool = False) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        if writing and self.fail_writes_with is not None:
            raise self.fail_writes_with

    def _matches(self, row: List[Any], condition: str) -> bool:
        match = ILIKE_RE.match(condition)
        if match:
            column = match["column"].replace('""', '"')
            needle = match["text"].replace("''", "'").lower()
            text = _text(row[self.names.index(column)])
            return text is not None and needle in text.lower()
        match = NULL_RE.match(condition)
        if match:
            value = row[self.names.index(match["column"].replace('""', '"'))]
            return (value is not None) if match["negate"] else (value is None)
        raise AssertionError(f"Unexpected condition: {condition}")

    async def execute_query(self, connection_id: str, database: str, sql: str) -> QueryResult:
        self.queries.append(sql)
        delay = self.latency(sql)
        if delay:
            await asyncio.sleep(delay)
        await self._maybe_fail()

        match = SELECT_RE.match(sql)
        if match is None:
            raise QueryError(f'syntax error at or near "{sql.split()[0]}"')

        rows = list(self.rows)
        if match["where"]:
            for condition in match["where"].split(" AND "):
                rows = [r for r in rows if self._matches(r, condition)]

        if match["what"] != "*":
            return QueryResult(columns=["count"], rows=[[len(rows)]], row_count=1)

        if match["sort"]:
            index = self.names.index(match["sort"].replace('""', '"'))
            present = sorted(
                (r for r in rows if r[index] is not None),
                key=lambda r: r[index],
                reverse=match["direction"] == "DESC",
            )
            missing = [r for r in rows if r[index] is None]
            rows = missing + present if match["direction"] == "DESC" else present + missing

        if match["limit"]:
            offset = int(match["offset"])
            rows = rows[offset : offset + int(match["limit"])]

        rows = [list(r) for r in rows]
        return QueryResult(
            columns=self.names if rows else [],
            rows=rows,
            row_count=len(rows),
            execution_time_ms=1,
        )

    async def get_columns(self, connection_id, database, schema, table) -> List[ColumnMeta]:
        self.calls.append(("get_columns", schema, table))
        await self._maybe_fail()
        return list(self.columns)

    async def get_primary_key_columns(self, connection_id, database, schema, table) -> List[str]:
        self.calls.append(("get_primary_key_columns", schema, table))
        await self._maybe_fail()
        return list(self.primary_key)

    def _find(self, primary_key_columns, values) -> Optional[List[Any]]:
        indexes = [self.names.index(c) for c in primary_key_columns]
        for row in self.rows:
            if [row[i] for i in indexes] == list(values):
                return row
        return None

    async def insert_row(
        self, connection_id, database, schema, table, columns, values, column_types
    ) -> None:
        self.calls.append(("insert_row", list(columns), list(values), list(column_types)))
        await self._maybe_fail(writing=True)
        row: List[Any] = [None] * len(self.names)
        for column, value in zip(columns, values):
            row[self.names.index(column)] = value
        for pk in self.primary_key:
            index = self.names.index(pk)
            if row[index] is None:
                row[index] = max((r[index] for r in self.rows), default=0) + 1
        if self._find(self.primary_key, [row[self.names.index(pk)] for pk in self.primary_key]):
            raise QueryError("duplicate key value violates unique constraint")
        self.rows.append(row)

    async def delete_rows(
        self, connection_id, database, schema, table, primary_key_columns, primary_key_values_list
    ) -> None:
        self.calls.append(("delete_rows", list(primary_key_columns), [list(v) for v in primary_key_values_list]))
        await self._maybe_fail(writing=True)
        doomed = [self._find(primary_key_columns, values) for values in primary_key_values_list]
        self.rows = [r for r in self.rows if not any(r is d for d in doomed)]

    async def update_cell(
        self,
        connection_id,
        database,
        schema,
        table,
        column,
        primary_key_columns,
        primary_key_values,
        new_value,
    ) -> None:
        self.calls.append(("update_cell", column, list(primary_key_values), new_value))
        await self._maybe_fail(writing=True)
        row = self._find(primary_key_columns, primary_key_values)
        if row is None:
            raise QueryError("No row matches the primary key; it may have been deleted")
        row[self.names.index(column)] = new_value


@pytest.fixture
def target() -> TableTarget:
    return TableTarget(
        connection_id="default", database="shop", schema="public", table="orders"
    )


@pytest.fixture
def remote_factory():
    """Build a FakeRemote with custom columns, rows or primary key."""
    return FakeRemote


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest_asyncio.fixture(scope="function")
async def session(target, remote) -> AsyncGenerator[SessionController, None]:
    """Opened session over 250 orders, page size 100, 50ms debounce."""
    controller = SessionController(target, remote, page_size=100, debounce_seconds=0.05)
    await controller.open()
    yield controller
    controller.close()
    await controller.settle()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(FILTER_DEBOUNCE_MS=50, PAGE_SIZE=100, MAX_HISTORY=5)


@pytest_asyncio.fixture(scope="function")
async def registry(remote, test_settings) -> AsyncGenerator[SessionRegistry, None]:
    registry = SessionRegistry(remote, test_settings)
    yield registry
    registry.close_all()


@pytest_asyncio.fixture(scope="function")
async def client(registry) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client."""

    app.dependency_overrides[get_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
