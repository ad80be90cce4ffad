"""
FastAPI application.

The API is the HTTP face of the record store: it hands out presigned upload
URLs, serves processing records and accepts artifact requests. Startup
creates the tables, registers the enrichment trigger as a record-store
listener and starts the store's change feed, so requests written through
this process or any other writer of the records table are generated in the
background.

Dependencies: fastapi, uvicorn, studyspark.api.routers
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyspark.api.deps.dependencies import get_service_cache
from studyspark.boundary.db.connection import create_all_tables
from studyspark.configs import get_settings
from studyspark.core.exceptions import (
    ConcurrentWriteError,
    ImmutableFieldError,
    StudySparkException,
)
from studyspark.observability import configure_logging

from .routers import documents_router, health_router

logger = logging.getLogger(__name__)

# Domain errors that mean "try again / conflicting state" rather than a server fault
CONFLICT_ERRORS = (ConcurrentWriteError, ImmutableFieldError)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all_tables()
    cache = get_service_cache()
    cache.wire_enrichment()
    await cache.record_store.start_change_feed()
    logger.info(
        f"{__name__}:lifespan - Started",
        extra={"environment": cache.settings.environment},
    )

    yield

    await cache.record_store.stop_change_feed()
    # Let in-flight enrichment finish before the engine goes away
    await cache.record_store.drain()
    cache.clear()
    logger.info(f"{__name__}:lifespan - Service cache cleared")


async def studyspark_exception_handler(request: Request, exc: StudySparkException) -> JSONResponse:
    """Render domain errors that escape a route as JSON."""
    status_code = 409 if isinstance(exc, CONFLICT_ERRORS) else 503
    logger.error(
        f"{__name__}:studyspark_exception_handler - {type(exc).__name__}: {exc}",
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": exc.message},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Application with CORS, error handling and all routers
    """
    app = FastAPI(
        title="StudySpark API",
        description="AI study aids (summary, flashcards, quiz) from uploaded PDFs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StudySparkException, studyspark_exception_handler)

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    uvicorn.run("studyspark.api.main:app", host="0.0.0.0", port=8000)
