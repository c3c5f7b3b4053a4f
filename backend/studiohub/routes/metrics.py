# backend/studiohub/routes/metrics.py
"""
Prometheus metrics endpoint.

Public, unauthenticated scrape target. Exposes service operation timings,
slot conflicts, availability write retries and expiry sweep counters.
"""

from fastapi import APIRouter, Request, Response

from ..monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/metrics", include_in_schema=False, response_class=Response, response_model=None)
async def get_prometheus_metrics(request: Request) -> Response:
    if request.query_params.get("refresh", "").lower() in {"1", "true", "yes"}:
        prometheus_metrics._invalidate_cache()
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
