"""Tests for mapping session errors to HTTP status codes."""

import importlib
import warnings

import pytest

from pgbrowse.core import exceptions
from pgbrowse.core.exceptions import status_for
from tablesession.errors import ConnectivityError, QueryError, SessionError, ValidationError


class TestStatusFor:
    """Test the session error to status code table."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ValidationError("No rows selected"), 400),
            (QueryError("syntax error"), 422),
            (ConnectivityError("refused"), 503),
            (SessionError("unknown"), 500),
        ],
    )
    def test_codes(self, error, code):
        assert status_for(error) == code

    def test_import_emits_no_deprecation_warning(self):
        """Building the table uses no deprecated status names."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            importlib.reload(exceptions)
