"""
Table session controller.

Wires user intent (filter, sort, select, edit, insert, delete, load more) to
the query compiler, the fetch sequencer and the page store, and exposes the
resulting session state.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from tablesession.coercion import coerce
from tablesession.compiler import QueryCompiler, active_filters
from tablesession.errors import SessionError, ValidationError
from tablesession.identity import decode_identity
from tablesession.page_store import PageStore
from tablesession.remote import RemoteExecutor
from tablesession.sequencer import DEFAULT_DEBOUNCE_SECONDS, FetchKind, FetchSequencer
from tablesession.types import (
    ColumnMeta,
    QueryResult,
    RowView,
    SessionState,
    SortDirection,
    SortSpec,
    TableTarget,
)

logger = logging.getLogger("tablesession")

DEFAULT_PAGE_SIZE = 100


def parse_count(result: QueryResult) -> Optional[int]:
    """First cell of a COUNT(*) result, or None if the server sent nothing."""
    if not result.rows or not result.rows[0]:
        return None
    value = result.rows[0][0]
    if value is None:
        return None
    return int(value)


class SessionController:
    """
    One open table: its cached page, filters, sort and selection.

    Each session owns its state exclusively; several sessions can be open
    side by side. All methods run on a single event loop; remote calls yield
    control, so user actions may interleave with outstanding fetches.
    """

    def __init__(
        self,
        target: TableTarget,
        remote: RemoteExecutor,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.target = target
        self.remote = remote
        self.page_size = page_size
        self.compiler = QueryCompiler(target.schema_name, target.table)
        self.store = PageStore()
        self.sequencer = FetchSequencer(debounce_seconds, on_error=self._on_fetch_error)

        self.columns: List[ColumnMeta] = []
        self.primary_key: List[str] = []
        self.filters: Dict[str, str] = {}
        self.sort: Optional[SortSpec] = None
        self.selection: Set[str] = set()

        self.loading = False
        self.loading_more = False
        self.error: Optional[str] = None
        self.insert_error: Optional[str] = None
        self.delete_error: Optional[str] = None
        self.execution_time_ms = 0
        self.closed = False

    # -- helpers ---------------------------------------------------------------

    @property
    def editable(self) -> bool:
        """Rows can be selected, edited, inserted and deleted."""
        return bool(self.primary_key)

    @property
    def column_names(self) -> List[str]:
        return self.store.column_names

    def _column_types(self) -> Dict[str, str]:
        return {column.name: column.data_type for column in self.columns}

    def _require_column(self, column: str) -> None:
        if column not in self.store.column_names:
            raise ValidationError(f"Unknown column: {column}")

    def _require_editable(self, action: str) -> None:
        if not self.editable:
            raise ValidationError(f"Table has no primary key; rows cannot be {action}")

    def _require_open(self) -> None:
        if self.closed:
            raise ValidationError(f"Session for {self.target} is closed")

    def _on_fetch_error(self, error: Exception) -> None:
        self.loading = False
        self.loading_more = False
        self.error = str(error)

    def _new_intent(self) -> int:
        """Filter/sort changed: drop stale results and the selection."""
        self.selection.clear()
        self.loading_more = False
        return self.sequencer.advance()

    async def _execute(self, sql: str) -> QueryResult:
        return await self.remote.execute_query(
            self.target.connection_id, self.target.database, sql
        )

    def _page_work(self, offset: int, with_count: bool):
        # Compile now so the fetch reflects the intent at schedule time
        filters = dict(self.filters)
        page_sql = self.compiler.select_page(filters, self.sort, self.page_size, offset)
        count_sql = self.compiler.select_count(filters) if with_count else None

        async def work() -> Tuple[QueryResult, Optional[int]]:
            if count_sql is None:
                return await self._execute(page_sql), None
            page, count = await asyncio.gather(
                self._execute(page_sql), self._execute(count_sql)
            )
            return page, parse_count(count)

        return work

    def _commit_page(self, outcome: Tuple[QueryResult, Optional[int]]) -> None:
        page, count = outcome
        self.store.replace_page(page.rows, count)
        self.execution_time_ms = page.execution_time_ms
        self.loading = False
        self.error = None

    def _commit_refresh(self, outcome: Tuple[QueryResult, Optional[int]]) -> None:
        page, _ = outcome
        self.store.replace_page(page.rows, self.store.total_count)
        self.execution_time_ms = page.execution_time_ms
        self.loading = False

    def _commit_more(self, outcome: Tuple[QueryResult, Optional[int]]) -> None:
        page, _ = outcome
        self.store.append_page(page.rows)
        self.execution_time_ms = page.execution_time_ms
        self.loading_more = False

    async def _refetch(self, kind: FetchKind = FetchKind.IMMEDIATE) -> None:
        self.loading = True
        task = self.sequencer.schedule(kind, self._page_work(0, True), self._commit_page)
        if task is not None:
            await task

    # -- lifecycle -------------------------------------------------------------

    async def open(self) -> SessionState:
        """
        Load column info, primary key, first page and count in parallel.

        Raises the remote error if the initial load fails; the session is
        left empty with ``error`` set.
        """
        self._require_open()
        self._new_intent()
        self.filters.clear()
        self.sort = None
        self.columns = []
        self.primary_key = []
        self.store.set_columns([], [])
        self.error = None
        self.insert_error = None
        self.delete_error = None
        self.loading = True

        target = self.target
        page_sql = self.compiler.select_page({}, None, self.page_size, 0)
        count_sql = self.compiler.select_count({})
        failures: List[Exception] = []

        async def load():
            return await asyncio.gather(
                self._execute(page_sql),
                self._execute(count_sql),
                self.remote.get_columns(
                    target.connection_id, target.database, target.schema_name, target.table
                ),
                self.remote.get_primary_key_columns(
                    target.connection_id, target.database, target.schema_name, target.table
                ),
            )

        def commit(outcome) -> None:
            page, count, columns, primary_key = outcome
            self.columns = list(columns)
            self.primary_key = list(primary_key)
            # An empty result carries no column names; fall back to the catalog
            names = page.columns or [column.name for column in self.columns]
            self.store.set_columns(names, self.primary_key)
            self.store.replace_page(page.rows, parse_count(count))
            self.execution_time_ms = page.execution_time_ms
            self.loading = False
            logger.info(
                f"Opened {target}: {len(self.store)} of {self.store.total_count} rows, "
                f"primary key {self.primary_key or 'none'}"
            )

        def on_error(error: Exception) -> None:
            self._on_fetch_error(error)
            failures.append(error)

        task = self.sequencer.schedule(FetchKind.IMMEDIATE, load, commit, on_error)
        await task
        if failures:
            raise failures[0]
        return self.state()

    def close(self) -> None:
        """Forget everything; in-flight results are ignored on arrival."""
        self.sequencer.close()
        self.store.set_columns([], [])
        self.selection.clear()
        self.loading = False
        self.loading_more = False
        self.closed = True

    async def settle(self) -> None:
        """Wait for pending and running fetches to finish."""
        await self.sequencer.drain()

    # -- filtering, sorting, paging --------------------------------------------

    def set_filter(self, column: str, raw: Optional[str]) -> None:
        """
        Change one column filter; the refetch is debounced.

        Blank text removes the filter. Each call restarts the debounce window,
        so a burst of keystrokes produces a single fetch with the last value.
        """
        self._require_open()
        self._require_column(column)
        if raw is None or not raw.strip():
            self.filters.pop(column, None)
        else:
            self.filters[column] = raw
        self._new_intent()
        self.loading = True
        self.sequencer.schedule(
            FetchKind.DEBOUNCED, self._page_work(0, True), self._commit_page
        )

    async def clear_filters(self) -> None:
        self._require_open()
        self.filters.clear()
        self._new_intent()
        await self._refetch()

    async def set_sort(
        self, column: Optional[str], direction: SortDirection = SortDirection.ASC
    ) -> None:
        """Sort by one column, or clear the sort with ``column=None``."""
        self._require_open()
        if column is None:
            self.sort = None
        else:
            self._require_column(column)
            self.sort = SortSpec(column=column, direction=direction)
        self._new_intent()
        await self._refetch()

    async def toggle_sort(self, column: str) -> Optional[SortSpec]:
        """Cycle a column through ascending, descending and unsorted."""
        if self.sort is None or self.sort.column != column:
            await self.set_sort(column, SortDirection.ASC)
        elif self.sort.direction == SortDirection.ASC:
            await self.set_sort(column, SortDirection.DESC)
        else:
            await self.set_sort(None)
        return self.sort

    async def load_more(self) -> int:
        """
        Fetch the next page and append it.

        The offset is the number of rows already cached. Ignored while a
        refetch or another load-more is outstanding, or when nothing is left.
        Returns the number of rows appended.
        """
        self._require_open()
        if self.loading or self.loading_more or not self.store.has_more:
            return 0
        if self.sequencer.debounce_pending:
            return 0

        before = len(self.store)
        self.loading_more = True
        task = self.sequencer.schedule(
            FetchKind.IMMEDIATE, self._page_work(before, False), self._commit_more
        )
        await task
        return max(0, len(self.store) - before)

    # -- selection --------------------------------------------------------------

    def select(self, identity: str, selected: bool = True) -> None:
        self._require_open()
        self._require_editable("selected")
        if not selected:
            self.selection.discard(identity)
            return
        if self.store.find(identity) is None:
            raise ValidationError("Row is not loaded")
        self.selection.add(identity)

    def select_all(self) -> None:
        self._require_open()
        self._require_editable("selected")
        self.selection = set(self.store.identities())

    def clear_selection(self) -> None:
        self.selection.clear()

    # -- mutations ---------------------------------------------------------------

    async def update_cell(self, identity: str, column: str, raw: str) -> Any:
        """
        Write one cell and mirror the change locally.

        The cache is touched only after the remote write succeeds. Returns the
        coerced value that was written.
        """
        self._require_open()
        self._require_editable("edited")
        self._require_column(column)
        if column in self.primary_key:
            raise ValidationError("Primary key columns cannot be edited")
        primary_key_values = self.store.primary_key_values(identity)
        if primary_key_values is None:
            raise ValidationError("Row is not loaded")

        value = coerce(raw)
        target = self.target
        await self.remote.update_cell(
            target.connection_id,
            target.database,
            target.schema_name,
            target.table,
            column,
            self.primary_key,
            primary_key_values,
            value,
        )
        self.store.apply_cell_update(identity, column, value)
        logger.info(f"Updated {target}.{column} for row {primary_key_values}")
        return value

    def _insert_triples(
        self, draft: Mapping[str, Optional[str]]
    ) -> Tuple[List[str], List[Any], List[str]]:
        types = self._column_types()
        columns: List[str] = []
        values: List[Any] = []
        column_types: List[str] = []
        for name in self.store.column_names:
            raw = (draft.get(name) or "").strip()
            if not raw:
                continue
            columns.append(name)
            values.append(coerce(raw))
            column_types.append(types.get(name, "text"))
        return columns, values, column_types

    async def insert_row(self, draft: Mapping[str, Optional[str]]) -> None:
        """
        Insert a row from raw draft text, then reload the first page.

        Blank draft values are left out so the database applies defaults.
        Where the new row lands in the table's order is unknown, so instead of
        splicing it into the cache the count is bumped and page one refetched.
        """
        self._require_open()
        self._require_editable("inserted")
        unknown = [name for name in draft if name not in self.store.column_names]
        if unknown:
            raise ValidationError(f"Unknown column: {unknown[0]}")

        columns, values, column_types = self._insert_triples(draft)
        if not columns:
            self.insert_error = "Fill in at least one column"
            raise ValidationError(self.insert_error)

        target = self.target
        self.insert_error = None
        try:
            await self.remote.insert_row(
                target.connection_id,
                target.database,
                target.schema_name,
                target.table,
                columns,
                values,
                column_types,
            )
        except SessionError as e:
            self.insert_error = str(e)
            raise
        logger.info(f"Inserted row into {target} ({', '.join(columns)})")

        # A fetch still pending or running means the cached count may belong
        # to an older filter/sort; recount instead of bumping it.
        recount = self.sequencer.busy
        self.store.increment_count_on_insert()
        # Rows cached past page one are dropped by the refresh; make any
        # outstanding fetch stale.
        self.sequencer.advance()
        self.loading_more = False
        self.loading = True
        if recount:
            work, commit = self._page_work(0, True), self._commit_page
        else:
            work, commit = self._page_work(0, False), self._commit_refresh
        task = self.sequencer.schedule(FetchKind.IMMEDIATE, work, commit)
        await task

    async def delete_selected(self) -> int:
        """Delete the selected rows; returns how many cached rows were dropped."""
        self._require_open()
        self._require_editable("deleted")
        identities = sorted(self.selection)
        if not identities:
            raise ValidationError("No rows selected")

        primary_key_values_list = [decode_identity(identity) for identity in identities]
        target = self.target
        self.delete_error = None
        try:
            await self.remote.delete_rows(
                target.connection_id,
                target.database,
                target.schema_name,
                target.table,
                self.primary_key,
                primary_key_values_list,
            )
        except SessionError as e:
            self.delete_error = str(e)
            raise

        removed = self.store.remove_by_identities(identities)
        self.selection.clear()
        logger.info(f"Deleted {len(identities)} row(s) from {target}")
        return removed

    # -- observation --------------------------------------------------------------

    def state(self) -> SessionState:
        """Snapshot of everything a view needs to render this session."""
        rows = [
            RowView(identity=self.store.identity(row), cells=list(row))
            for row in self.store.rows
        ]
        return SessionState(
            target=self.target,
            columns=list(self.columns),
            primary_key=list(self.primary_key),
            editable=self.editable,
            rows=rows,
            total_count=self.store.total_count,
            has_more=self.store.has_more,
            filters=active_filters(self.filters),
            sort=self.sort,
            selection=sorted(self.selection),
            generation=self.sequencer.generation,
            loading=self.loading,
            loading_more=self.loading_more,
            error=self.error,
            insert_error=self.insert_error,
            delete_error=self.delete_error,
            execution_time_ms=self.execution_time_ms,
        )
