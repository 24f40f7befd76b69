"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Expose registered Prometheus metrics.

    Includes extraction attempts per method, embedding source counts,
    search latency and generation latency by outcome.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
