"""Shared endpoint dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from pgbrowse.core.exceptions import NotFound
from pgbrowse.services.registry import SessionRegistry
from tablesession.controller import SessionController


def get_registry(request: Request) -> SessionRegistry:
    """Registry created by the application lifespan."""
    return request.app.state.registry


Registry = Annotated[SessionRegistry, Depends(get_registry)]


def get_session(session_id: str, registry: Registry) -> SessionController:
    """Resolve a session id from the path, 404 if it is not open."""
    session = registry.get(session_id)
    if session is None:
        raise NotFound("Session")
    return session


Session = Annotated[SessionController, Depends(get_session)]
