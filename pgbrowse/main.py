"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pgbrowse.config import get_settings
from pgbrowse.core.exceptions import SessionError, status_for
from pgbrowse.core.logging_config import setup_logging
from pgbrowse.database import EngineRegistry
from pgbrowse.services.executor import DatabaseExecutor
from pgbrowse.services.registry import SessionRegistry

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    engines = EngineRegistry(settings)
    app.state.registry = SessionRegistry(DatabaseExecutor(engines), settings)
    yield
    # Shutdown
    logger.info("Shutting down application")
    app.state.registry.close_all()
    await engines.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Paginated, filterable, editable browsing of PostgreSQL tables",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SessionError)
async def session_error_handler(request: Request, exc: SessionError) -> JSONResponse:
    """Report session errors verbatim, with a status matching their kind."""
    code = status_for(exc)
    if code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}


# Import and include routers after app is created to avoid circular imports
from pgbrowse.api.v1.router import api_router

app.include_router(api_router, prefix="/api/v1")
