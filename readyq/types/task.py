"""
Task-related type definitions.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from readyq.constants import DEFAULT_TASK_TYPE


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class Task(BaseModel):
    """
    A unit of work stored as a sorted-set member.

    The serialized form is the member itself, so the store has no other
    notion of identity. ``id`` is random per task to keep two tasks with the
    same payload distinct. ``failure_count`` only grows, by one per failed
    attempt, and is the only retry state there is.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    task_type: str = DEFAULT_TASK_TYPE
    payload: Any = None
    created_at: datetime = Field(default_factory=utc_now)
    failure_count: int = Field(default=0, ge=0)
    last_error: str | None = None

    def with_failure(self, reason: str | None) -> "Task":
        """Return a copy carrying one more failure and its reason."""
        return self.model_copy(
            update={"failure_count": self.failure_count + 1, "last_error": reason}
        )


class TaskResult(BaseModel):
    """
    Result of handling a task.
    Returned by task handlers after processing.
    """

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class ClaimedTask:
    """
    A task removed from the queue by a claim.

    Keeps the raw member and its score so the task can be acknowledged
    against the lease set or put back exactly where it was.
    """

    task: Task
    member: str
    ready_at: datetime
    claimed_at: datetime

    @property
    def task_id(self) -> str:
        return self.task.id

    @property
    def attempt(self) -> int:
        """1-based number of the attempt this delivery represents."""
        return self.task.failure_count + 1


@dataclass
class TaskContext:
    """
    Context passed to task handlers during execution.
    """

    task: Task
    attempt: int
    max_attempts: int
    worker_id: str

    @property
    def payload(self) -> Any:
        return self.task.payload

    @property
    def is_last_attempt(self) -> bool:
        """Check if this is the last retry attempt."""
        return self.attempt >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining retry attempts."""
        return max(0, self.max_attempts - self.attempt)
