"""Prometheus scrape endpoint.

Series exposed: HTTP request counts and latency per route template,
service starts and uptime, the sequencer's waiting-queue gauge, anchor
outcomes and ledger submission attempts.
"""

from fastapi import APIRouter, Response

from certanchor.bootstrap.metrics import get_metrics_exporter

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus scrape endpoint",
    response_class=Response,
    responses={200: {"content": {"text/plain": {}}}},
)
async def get_metrics() -> Response:
    exporter = get_metrics_exporter()
    return Response(content=exporter.generate_metrics(), media_type=exporter.content_type)
