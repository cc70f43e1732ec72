"""
Event type definitions for task lifecycle notifications.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from readyq.constants import (
    EVENT_TASK_DISCARDED,
    EVENT_TASK_RETRIED,
    EVENT_TASK_SUCCEEDED,
    TaskState,
)
from readyq.types.task import Task, utc_now


class TaskEvent(BaseModel):
    """
    Event emitted when a task changes state.

    Discard events are how an application learns about tasks dropped for
    good, since the queue keeps no dead-letter set.
    """

    event_type: str
    task_id: str
    task_type: str
    state: TaskState
    timestamp: datetime
    data: dict[str, Any] | None = None

    @classmethod
    def task_succeeded(cls, task: Task, worker_id: str) -> "TaskEvent":
        """Create a task succeeded event."""
        return cls(
            event_type=EVENT_TASK_SUCCEEDED,
            task_id=task.id,
            task_type=task.task_type,
            state=TaskState.SUCCEEDED,
            timestamp=utc_now(),
            data={"worker_id": worker_id, "failure_count": task.failure_count},
        )

    @classmethod
    def task_retried(cls, task: Task, ready_at: datetime, error: str | None) -> "TaskEvent":
        """Create a task requeued-for-retry event."""
        return cls(
            event_type=EVENT_TASK_RETRIED,
            task_id=task.id,
            task_type=task.task_type,
            state=TaskState.PENDING,
            timestamp=utc_now(),
            data={
                "error": error,
                "failure_count": task.failure_count,
                "ready_at": ready_at.isoformat(),
            },
        )

    @classmethod
    def task_discarded(
        cls,
        task_id: str,
        task_type: str,
        reason: str,
        error: str | None = None,
        attempts: int | None = None,
    ) -> "TaskEvent":
        """Create a task discarded event."""
        return cls(
            event_type=EVENT_TASK_DISCARDED,
            task_id=task_id,
            task_type=task_type,
            state=TaskState.DISCARDED,
            timestamp=utc_now(),
            data={"reason": reason, "error": error, "attempts": attempts},
        )
