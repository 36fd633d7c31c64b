"""Error taxonomy shared by table sessions and remote executors."""


class SessionError(Exception):
    """Base class for errors surfaced to the user by a table session."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConnectivityError(SessionError):
    """The remote call could not reach the database."""

    def __str__(self) -> str:
        return f"Connection error: {self.message}"


class QueryError(SessionError):
    """The database rejected a statement (malformed SQL, constraint violation)."""

    def __str__(self) -> str:
        return f"Database error: {self.message}"


class ValidationError(SessionError):
    """An action was refused locally, before any remote call was made."""
