"""
Health check routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from readyq import __version__
from readyq.observability.metrics import get_metrics
from readyq.store import SortedSetStore, get_store
from readyq.types.api import HealthResponse
from readyq.types.task import utc_now

router = APIRouter(tags=["Health"])

StoreDep = Annotated[SortedSetStore, Depends(get_store)]


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and store connection.",
)
async def health_check(store: StoreDep) -> HealthResponse:
    """
    Perform a health check.

    Pings the backing store and reports service status.
    """
    store_status = "healthy" if await store.ping() else "unhealthy"

    return HealthResponse(
        status="healthy" if store_status == "healthy" else "degraded",
        version=__version__,
        store=store_status,
        timestamp=utc_now(),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(store: StoreDep) -> dict:
    """Kubernetes readiness probe endpoint."""
    return {"ready": await store.ping()}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness probe endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
