"""Interface of the collaborator that actually talks to the database."""

from typing import Any, List, Protocol, Sequence

from tablesession.types import ColumnMeta, QueryResult


class RemoteExecutor(Protocol):
    """
    Executes SQL on behalf of table sessions.

    Every call is addressed by an opaque connection id; sessions never see
    credentials or connection parameters. Implementations raise
    ``ConnectivityError`` when the database cannot be reached and
    ``QueryError`` when it rejects a statement.
    """

    async def execute_query(
        self, connection_id: str, database: str, sql: str
    ) -> QueryResult: ...

    async def get_columns(
        self, connection_id: str, database: str, schema: str, table: str
    ) -> List[ColumnMeta]: ...

    async def get_primary_key_columns(
        self, connection_id: str, database: str, schema: str, table: str
    ) -> List[str]: ...

    async def insert_row(
        self,
        connection_id: str,
        database: str,
        schema: str,
        table: str,
        columns: Sequence[str],
        values: Sequence[Any],
        column_types: Sequence[str],
    ) -> None: ...

    async def delete_rows(
        self,
        connection_id: str,
        database: str,
        schema: str,
        table: str,
        primary_key_columns: Sequence[str],
        primary_key_values_list: Sequence[Sequence[Any]],
    ) -> None: ...

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
    ) -> None: ...
