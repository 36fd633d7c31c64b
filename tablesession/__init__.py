"""Table session engine: paging, filtering, sorting and editing one table."""

from tablesession.controller import SessionController
from tablesession.query_editor import QueryEditor
from tablesession.remote import RemoteExecutor

__all__ = ["SessionController", "QueryEditor", "RemoteExecutor"]
