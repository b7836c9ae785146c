"""Health and readiness endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from certanchor.api.dependencies.certificates import get_nonce_sequencer
from certanchor.api.models.health import HealthResponse, ReadinessResponse
from certanchor.application.services.nonce_sequencer import NonceSequencer

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return health status.

    Returns:
        Health status with 200 OK.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(
    sequencer: Annotated[NonceSequencer, Depends(get_nonce_sequencer)],
) -> JSONResponse:
    """Report whether the sequencer is accepting anchors.

    503 while the sequencer is stopped or its queue is full.
    """
    full = sequencer.queue_depth >= sequencer.max_queue_depth
    ready = sequencer.running and not full
    if not sequencer.running:
        state = "stopped"
    elif full:
        state = "saturated"
    else:
        state = "ready"
    body = ReadinessResponse(
        status=state,
        sequencer_running=sequencer.running,
        queue_depth=sequencer.queue_depth,
        max_queue_depth=sequencer.max_queue_depth,
        next_sequence=sequencer.next_sequence,
    )
    return JSONResponse(
        status_code=200 if ready else 503,
        content=body.model_dump(by_alias=True),
    )
