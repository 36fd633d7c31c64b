"""SQL text for browsing and editing a single table."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from tablesession.coercion import to_sql_text
from tablesession.errors import ValidationError
from tablesession.types import SortDirection, SortSpec

NULL_FILTER = "null"
NOT_NULL_FILTER = "not null"

# information_schema data_type values that are usable as a cast target
# ("integer", "character varying", "timestamp with time zone", ...).
# "ARRAY" and "USER-DEFINED" are not, and are left for the server to infer.
_CASTABLE_TYPE = re.compile(r"^[a-z][a-z0-9_ ]*(\(\d+(,\s*\d+)?\))?(\[\])?$", re.I)
_UNCASTABLE_TYPES = {"array", "user-defined"}


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, doubling any embedded double quote."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Single-quote a literal, doubling any embedded single quote."""
    return "'" + value.replace("'", "''") + "'"


def is_castable(data_type: Optional[str]) -> bool:
    if not data_type or data_type.lower() in _UNCASTABLE_TYPES:
        return False
    return bool(_CASTABLE_TYPE.match(data_type))


@dataclass(frozen=True)
class Statement:
    """SQL text with named bind parameters."""

    sql: str
    params: Dict[str, Any] = field(default_factory=dict)


def active_filters(filters: Mapping[str, str]) -> Dict[str, str]:
    """Filters that actually constrain rows, trimmed, in insertion order."""
    return {
        column: value.strip()
        for column, value in filters.items()
        if value is not None and value.strip()
    }


class QueryCompiler:
    """
    Builds the statements a table session issues for one table.

    Filters are a convenience: each one is a case-insensitive partial match
    against the column's text form, with ``null`` / ``not null`` reserved for
    IS NULL / IS NOT NULL. Filter text is inlined as an escaped literal; write
    statements always bind their values as parameters.
    """

    def __init__(self, schema: str, table: str):
        self.schema = schema
        self.table = table

    @property
    def table_ref(self) -> str:
        return f"{quote_identifier(self.schema)}.{quote_identifier(self.table)}"

    def condition(self, column: str, raw: str) -> str:
        """Predicate for a single column filter."""
        token = raw.strip()
        column_sql = quote_identifier(column)
        if token.lower() == NULL_FILTER:
            return f"{column_sql} IS NULL"
        if token.lower() == NOT_NULL_FILTER:
            return f"{column_sql} IS NOT NULL"
        return f"{column_sql}::text ILIKE {quote_literal('%' + token + '%')}"

    def where_clause(self, filters: Mapping[str, str]) -> str:
        conditions = [
            self.condition(column, value)
            for column, value in active_filters(filters).items()
        ]
        if not conditions:
            return ""
        return " WHERE " + " AND ".join(conditions)

    @staticmethod
    def order_clause(sort: Optional[SortSpec]) -> str:
        if sort is None:
            return ""
        direction = "DESC" if sort.direction == SortDirection.DESC else "ASC"
        return f" ORDER BY {quote_identifier(sort.column)} {direction}"

    def select_page(
        self,
        filters: Mapping[str, str],
        sort: Optional[SortSpec],
        limit: int,
        offset: int = 0,
    ) -> str:
        """Bounded page of matching rows."""
        if limit < 1 or offset < 0:
            raise ValueError(f"Invalid page bounds: limit={limit}, offset={offset}")
        return (
            f"SELECT * FROM {self.table_ref}"
            f"{self.where_clause(filters)}"
            f"{self.order_clause(sort)}"
            f" LIMIT {int(limit)} OFFSET {int(offset)}"
        )

    def select_count(self, filters: Mapping[str, str]) -> str:
        """Number of matching rows, same filter, no sort or paging."""
        return f"SELECT COUNT(*) FROM {self.table_ref}{self.where_clause(filters)}"

    @staticmethod
    def _typed_param(name: str, data_type: Optional[str]) -> str:
        # Values travel as text and are parsed by the column type's input
        # function on the server.
        if is_castable(data_type):
            return f"CAST(CAST(:{name} AS text) AS {data_type})"
        return f":{name}"

    def insert(
        self,
        columns: Sequence[str],
        values: Sequence[Any],
        column_types: Sequence[str],
    ) -> Statement:
        """INSERT over explicit column/value/type triples."""
        if not columns:
            raise ValidationError("Fill in at least one column")
        if not len(columns) == len(values) == len(column_types):
            raise ValueError("columns, values and column_types must align")

        params = {}
        placeholders = []
        for index, (value, data_type) in enumerate(zip(values, column_types)):
            name = f"v{index}"
            params[name] = to_sql_text(value)
            placeholders.append(self._typed_param(name, data_type))

        column_list = ", ".join(quote_identifier(c) for c in columns)
        sql = (
            f"INSERT INTO {self.table_ref} ({column_list}) "
            f"VALUES ({', '.join(placeholders)})"
        )
        return Statement(sql, params)

    def _key_predicate(
        self,
        primary_key_columns: Sequence[str],
        primary_key_types: Sequence[Optional[str]],
        primary_key_values: Sequence[Any],
        prefix: str,
        params: Dict[str, Any],
    ) -> str:
        if len(primary_key_columns) != len(primary_key_values):
            raise ValueError(
                f"Expected {len(primary_key_columns)} key values, "
                f"got {len(primary_key_values)}"
            )
        parts = []
        for index, (column, data_type, value) in enumerate(
            zip(primary_key_columns, primary_key_types, primary_key_values)
        ):
            name = f"{prefix}{index}"
            params[name] = to_sql_text(value)
            parts.append(
                f"{quote_identifier(column)} = {self._typed_param(name, data_type)}"
            )
        return " AND ".join(parts)

    def update_cell(
        self,
        column: str,
        column_type: Optional[str],
        new_value: Any,
        primary_key_columns: Sequence[str],
        primary_key_types: Sequence[Optional[str]],
        primary_key_values: Sequence[Any],
    ) -> Statement:
        """UPDATE of a single cell addressed by primary key."""
        if not primary_key_columns:
            raise ValidationError("Table has no primary key; rows cannot be edited")
        params: Dict[str, Any] = {"value": to_sql_text(new_value)}
        predicate = self._key_predicate(
            primary_key_columns, primary_key_types, primary_key_values, "k", params
        )
        sql = (
            f"UPDATE {self.table_ref} "
            f"SET {quote_identifier(column)} = {self._typed_param('value', column_type)} "
            f"WHERE {predicate}"
        )
        return Statement(sql, params)

    def delete_rows(
        self,
        primary_key_columns: Sequence[str],
        primary_key_types: Sequence[Optional[str]],
        primary_key_values_list: Sequence[Sequence[Any]],
    ) -> Statement:
        """DELETE of every row whose key is listed."""
        if not primary_key_columns:
            raise ValidationError("Table has no primary key; rows cannot be deleted")
        if not primary_key_values_list:
            raise ValidationError("No rows selected")
        params: Dict[str, Any] = {}
        predicates: List[str] = []
        for row_index, values in enumerate(primary_key_values_list):
            predicate = self._key_predicate(
                primary_key_columns,
                primary_key_types,
                values,
                f"r{row_index}_",
                params,
            )
            predicates.append(f"({predicate})")
        sql = f"DELETE FROM {self.table_ref} WHERE {' OR '.join(predicates)}"
        return Statement(sql, params)
