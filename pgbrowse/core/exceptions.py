"""Custom exception classes."""

from fastapi import HTTPException, status

from tablesession.errors import (
    ConnectivityError,
    QueryError,
    SessionError,
    ValidationError,
)


class NotFound(HTTPException):
    """Exception for resource not found."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class BadRequest(HTTPException):
    """Exception for bad request."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


# Most specific first; looked up by isinstance in the app's exception handler
SESSION_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (QueryError, 422),
    (ConnectivityError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: SessionError) -> int:
    """HTTP status code a session error is reported with."""
    for error_type, code in SESSION_ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "NotFound",
    "BadRequest",
    "SessionError",
    "ConnectivityError",
    "QueryError",
    "ValidationError",
    "status_for",
]
