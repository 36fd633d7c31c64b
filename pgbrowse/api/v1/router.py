"""API v1 router - aggregates all endpoint routers."""

from fastapi import APIRouter

from pgbrowse.api.v1.queries import router as queries_router
from pgbrowse.api.v1.sessions import router as sessions_router

api_router = APIRouter()

# Include all routers
api_router.include_router(sessions_router)
api_router.include_router(queries_router)


@api_router.get("/")
async def api_info():
    """API information endpoint."""
    return {
        "name": "pgbrowse API",
        "version": "0.1.0",
        "endpoints": {
            "sessions": "/api/v1/sessions",
            "queries": "/api/v1/queries",
        },
    }
