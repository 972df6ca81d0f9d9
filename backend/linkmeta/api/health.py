import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from linkmeta.api.deps import get_caches
from linkmeta.config import settings
from linkmeta.core.cache import Caches
from linkmeta.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    summary="Liveness check",
    description="Returns HTTP 200 while the process is running, with the current number of cached metadata records and favicon lookups.",
)
async def health(caches: Caches = Depends(get_caches)):
    return {"status": "ok", **await caches.stats()}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose application metrics in Prometheus exposition format. Returns HTTP 404 if metrics collection is disabled in the application configuration.",
)
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
