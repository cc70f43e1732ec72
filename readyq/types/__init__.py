"""
Type definitions for the task queue.
Contains input/output type definitions, grouped by module.
"""

from readyq.types.api import (
    EnqueueTaskRequest,
    EnqueueTaskResponse,
    ErrorResponse,
    HealthResponse,
    QueueStatsResponse,
)
from readyq.types.events import TaskEvent
from readyq.types.task import ClaimedTask, Task, TaskContext, TaskResult, utc_now

__all__ = [
    # API types
    "EnqueueTaskRequest",
    "EnqueueTaskResponse",
    "QueueStatsResponse",
    "HealthResponse",
    "ErrorResponse",
    # Task types
    "Task",
    "TaskResult",
    "TaskContext",
    "ClaimedTask",
    "utc_now",
    # Event types
    "TaskEvent",
]
