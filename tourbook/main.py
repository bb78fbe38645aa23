"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .clients.api_client import build_http_client
from .core.config import settings
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    instrument_fastapi,
    setup_structured_logging,
    setup_tracing,
)
from .routers import bookings, health, reviews
from .services.session import SessionRegistry
from .workers.manager import WorkerManager

# Configure structured logging
setup_structured_logging()

# Configure traditional logging for compatibility
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Starts the session sweep worker on startup; on shutdown stops it,
    waits for in-flight booking syncs and closes the remote HTTP client.
    """
    logger.info("Starting coordination service")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Remote store: {settings.remote_api_url}")

    try:
        setup_tracing("tourbook-coordination")
        await app.state.worker_manager.start_all()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down coordination service")

    try:
        await app.state.worker_manager.stop_all()
        await app.state.session_registry.close()
        if app.state.owns_http_client:
            await app.state.http_client.aclose()
    except Exception as e:
        logger.error(f"Error during application cleanup: {e}")

    logger.info("Application shutdown complete")


def create_app(http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        http_client: Client for the remote store; one is built from the
            settings when omitted and then closed on shutdown

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Tour Booking Coordination API",
        description="Keeps bookings and reviews consistent for the tour booking UI",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.owns_http_client = http_client is None
    app.state.http_client = http_client or build_http_client(
        settings.remote_api_url, settings.remote_timeout_seconds
    )
    app.state.session_registry = SessionRegistry(
        app.state.http_client,
        ttl_seconds=settings.session_ttl_seconds,
        max_size=settings.session_cache_size,
        await_booking_sync=settings.await_booking_sync,
    )
    app.state.worker_manager = WorkerManager(
        app.state.session_registry,
        sweep_interval_seconds=settings.session_sweep_interval_seconds,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        response_model=dict,
    )
    async def health_check():
        """Return service liveness."""
        return {
            "status": "healthy",
            "service": "tourbook-coordination",
            "version": "1.0.0",
            "environment": settings.environment,
            "debug": settings.debug,
        }

    @app.get(
        "/ready",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Readiness Check",
        response_model=dict,
    )
    async def readiness_check(request: Request):
        """Report whether the background workers are running."""
        workers = request.app.state.worker_manager.get_worker_status()
        return {
            "status": "ready",
            "service": "tourbook-coordination",
            "checks": {
                "workers": workers,
                "remote_store": settings.remote_api_url,
            },
        }

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        response_model=dict,
    )
    async def service_info():
        """Describe the service and its endpoints."""
        return {
            "service": "tourbook-coordination",
            "version": "1.0.0",
            "description": "Booking/review coordination backend for the tour booking UI",
            "environment": settings.environment,
            "debug": settings.debug,
            "features": {
                "booking_review_coordination": True,
                "await_booking_sync": settings.await_booking_sync,
                "tracing": settings.otlp_endpoint is not None,
                "problem_details": True,
            },
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "bookings": "/v1/bookings",
                "reviews": "/v1/reviews",
                "docs": "/docs" if settings.debug else None,
            },
        }

    app.include_router(health.router)
    app.include_router(bookings.router)
    app.include_router(reviews.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tourbook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
