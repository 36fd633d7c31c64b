"""In-memory cache of the rows a table session has loaded."""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from tablesession.identity import identity_of, primary_key_values
from tablesession.types import PageState, Row

logger = logging.getLogger("tablesession")


class PageStore:
    """
    Holds the loaded rows and the matching-row count for one session.

    Rows are positional and aligned with ``column_names``. Local mutations
    are only applied after the corresponding remote write has succeeded, and
    the row order changes only through ``replace_page``.
    """

    def __init__(
        self,
        column_names: Sequence[str] = (),
        primary_key_columns: Sequence[str] = (),
    ):
        self.column_names: List[str] = list(column_names)
        self.primary_key_columns: List[str] = list(primary_key_columns)
        self.rows: List[Row] = []
        self.total_count: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return self.total_count is not None and len(self.rows) < self.total_count

    def __len__(self) -> int:
        return len(self.rows)

    def set_columns(
        self, column_names: Sequence[str], primary_key_columns: Sequence[str]
    ) -> None:
        """Replace the column layout; cached rows no longer line up, so drop them."""
        self.column_names = list(column_names)
        self.primary_key_columns = list(primary_key_columns)
        self.rows = []
        self.total_count = None

    def identity(self, row: Sequence[Any]) -> str:
        return identity_of(row, self.primary_key_columns, self.column_names)

    def identities(self) -> List[str]:
        return [self.identity(row) for row in self.rows]

    def find(self, identity: str) -> Optional[int]:
        """Index of the cached row with this identity, if loaded."""
        if not identity:
            return None
        for index, row in enumerate(self.rows):
            if self.identity(row) == identity:
                return index
        return None

    def primary_key_values(self, identity: str) -> Optional[List[Any]]:
        index = self.find(identity)
        if index is None:
            return None
        return primary_key_values(
            self.rows[index], self.primary_key_columns, self.column_names
        )

    def replace_page(self, rows: Iterable[Row], total_count: Optional[int]) -> None:
        """Swap in a freshly fetched first page."""
        self.rows = [list(row) for row in rows]
        self.total_count = total_count

    def append_page(self, rows: Iterable[Row]) -> int:
        """
        Append a "load more" page in response order.

        No de-duplication: with offset paging, rows inserted or deleted
        upstream between pages can show up twice or be skipped.
        """
        more = [list(row) for row in rows]
        self.rows.extend(more)
        return len(more)

    def apply_cell_update(self, identity: str, column_name: str, value: Any) -> bool:
        """Replace one cell of one cached row; everything else is untouched."""
        try:
            column_index = self.column_names.index(column_name)
        except ValueError:
            logger.warning(f"Cell update for unknown column {column_name!r} ignored")
            return False

        row_index = self.find(identity)
        if row_index is None:
            return False

        row = list(self.rows[row_index])
        while len(row) <= column_index:
            row.append(None)
        row[column_index] = value
        self.rows[row_index] = row
        return True

    def remove_by_identities(self, identities: Iterable[str]) -> int:
        """Drop matching rows and lower the count by the number removed."""
        doomed = set(identities)
        kept = [row for row in self.rows if self.identity(row) not in doomed]
        removed = len(self.rows) - len(kept)
        self.rows = kept
        if self.total_count is not None:
            self.total_count = max(0, self.total_count - removed)
        return removed

    def increment_count_on_insert(self) -> None:
        if self.total_count is not None:
            self.total_count += 1

    def snapshot(self, generation: int) -> PageState:
        return PageState(
            rows=[list(row) for row in self.rows],
            total_count=self.total_count,
            generation=generation,
        )
