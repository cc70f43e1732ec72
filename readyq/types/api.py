"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from readyq.constants import DEFAULT_TASK_TYPE, MAX_DELAY_SECONDS


class EnqueueTaskRequest(BaseModel):
    """Request body for enqueueing a task."""

    task_type: str = Field(default=DEFAULT_TASK_TYPE, description="Handler name")
    payload: Any = Field(default=None, description="Application payload")
    ready_at: datetime | None = Field(
        default=None, description="Earliest time the task may be claimed"
    )
    delay_seconds: float | None = Field(
        default=None, ge=0, le=MAX_DELAY_SECONDS, description="Delay relative to now"
    )

    @model_validator(mode="after")
    def _one_schedule(self) -> "EnqueueTaskRequest":
        if self.ready_at is not None and self.delay_seconds is not None:
            raise ValueError("Specify either ready_at or delay_seconds, not both")
        return self


class EnqueueTaskResponse(BaseModel):
    """Response body after enqueueing a task."""

    id: str
    task_type: str
    ready_at: datetime
    score: int
    message: str = "Task enqueued"


class QueueStatsResponse(BaseModel):
    """Sorted-set counters for a queue."""

    queue: str
    depth: int
    due: int
    leased: int
    leasing_enabled: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    store: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Error response body."""

    error: str
    error_code: str | None = None
