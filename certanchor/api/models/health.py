"""Health check response models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Health status string (e.g., "healthy").
    """

    status: str


class ReadinessResponse(BaseModel):
    """Readiness of the anchoring pipeline."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    sequencer_running: bool = Field(..., alias="sequencerRunning")
    queue_depth: int = Field(..., alias="queueDepth")
    max_queue_depth: int = Field(..., alias="maxQueueDepth")
    next_sequence: Optional[int] = Field(None, alias="nextSequence")
