"""Health and metrics router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from ..core.dependencies import get_session_registry
from ..core.observability import get_prometheus_metrics
from ..schemas.health import HealthResponse, HealthStatus
from ..services.session import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.post("/v1/health/ping", response_model=HealthResponse)
async def health_ping(registry: SessionRegistry = Depends(get_session_registry)) -> HealthResponse:
    """
    Health check endpoint.

    Returns current service status, timestamp and the number of live
    user sessions.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        active_sessions=len(registry),
    )

    logger.debug(
        "Health check requested",
        extra={"active_sessions": response_data.active_sessions}
    )
    return response_data


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Endpoint for Prometheus to scrape metrics",
    response_class=Response,
    tags=["Observability"]
)
async def metrics() -> Response:
    """Return Prometheus metrics in text format."""
    return Response(
        content=get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
