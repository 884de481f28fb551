"""
Health and metrics endpoints.

  GET /health   -- Liveness probe (always returns 200 if process is alive)
  GET /metrics  -- Prometheus exposition of the gateway counters
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from ..models.responses import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def liveness(request: Request) -> HealthResponse:
    """Liveness probe -- returns 200 if the process is running."""
    directory = request.app.state.directory
    store = request.app.state.store
    start_time = getattr(request.app.state, "start_time", time.time())
    return HealthResponse(
        status="healthy" if directory.count > 0 else "degraded",
        agents_registered=directory.count,
        tasks_tracked=store.count,
        uptime_seconds=round(time.time() - start_time, 1),
    )


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Chat completion and task counters in Prometheus text format."""
    panel_metrics = request.app.state.metrics
    return Response(content=panel_metrics.render(), media_type=panel_metrics.content_type)
