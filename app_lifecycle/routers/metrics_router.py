"""
Prometheus scrape endpoint.
"""
from fastapi import APIRouter, Response

from app_lifecycle.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Lifecycle transition counters, auto-decline totals, rate limit and HTTP metrics.",
    response_class=Response,
    include_in_schema=False,
)
async def metrics():
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
