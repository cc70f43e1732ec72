"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from readyq import __version__
from readyq.api.routes import health_router, tasks_router
from readyq.config import get_settings
from readyq.exceptions import StoreUnavailable
from readyq.observability.logging import setup_logging
from readyq.observability.metrics import setup_metrics
from readyq.observability.tracing import instrument_fastapi, setup_tracing
from readyq.store import close_store, init_store
from readyq.types.api import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_store()

    logger.info("Application started")

    yield

    await close_store()
    logger.info("Application shutdown")


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    """Map store outages that escape a route to 503."""
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error=exc.message, error_code=exc.error_code).model_dump(),
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="readyq API",
        description="Submit and inspect tasks of a sorted-set backed delayed queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)

    app.include_router(health_router)
    app.include_router(tasks_router)

    if get_settings().tracing_enabled:
        instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
