"""
Retry policy for failed tasks.

The policy is a pure function of the task it is handed: it keeps no state
of its own, and the only retry bookkeeping is ``Task.failure_count``.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from readyq.config import Settings, get_settings
from readyq.constants import DEFAULT_MAX_ATTEMPTS, BackoffStrategy
from readyq.exceptions import ConfigurationError, MaxAttemptsExceeded
from readyq.types.task import Task

BackoffFunc = Callable[[int], float]


@dataclass(frozen=True)
class BackoffConfig:
    """Parameters of a backoff curve, in seconds."""

    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_seconds: float = 1.0
    max_seconds: float = 300.0

    def __post_init__(self) -> None:
        if self.base_seconds < 0:
            raise ConfigurationError("base_seconds must be non-negative", "retry")
        if self.max_seconds < self.base_seconds:
            raise ConfigurationError("max_seconds must be >= base_seconds", "retry")

    def delay(self, failure_count: int) -> float:
        """
        Seconds to wait before the attempt following ``failure_count`` failures.

        Non-decreasing in ``failure_count`` for every strategy, and capped at
        ``max_seconds``.
        """
        n = max(0, failure_count)
        if self.strategy == BackoffStrategy.CONSTANT:
            raw = self.base_seconds
        elif self.strategy == BackoffStrategy.LINEAR:
            raw = self.base_seconds * n
        else:
            # Avoid float overflow for very large failure counts.
            exponent = n - 1
            if exponent > 1023:
                raw = math.inf
            else:
                raw = self.base_seconds * math.pow(2.0, exponent)
        return min(raw, self.max_seconds)


@dataclass(frozen=True)
class RetryDecision:
    """
    Outcome of a failure.

    ``task`` is the task as it should be stored next (``failure_count``
    already incremented). ``ready_at`` is set when the task is to be
    requeued; ``discard`` carries the reason it is dropped instead.
    """

    task: Task
    ready_at: datetime | None = None
    discard: MaxAttemptsExceeded | None = None

    @property
    def should_retry(self) -> bool:
        return self.discard is None


class RetryPolicy:
    """
    Decide between requeue-with-backoff and discard.

    A task that has failed ``f`` times before this failure is requeued when
    ``f + 1 < max_attempts``; otherwise it is discarded. With
    ``max_attempts=3`` a task gets three deliveries in total.

    Args:
        max_attempts: Total deliveries allowed, at least 1.
        backoff: A ``BackoffConfig`` or any non-decreasing
            ``failure_count -> seconds`` callable.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: BackoffConfig | BackoffFunc | None = None,
    ):
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1", "retry")
        self.max_attempts = max_attempts
        if backoff is None:
            backoff = BackoffConfig()
        self._backoff: BackoffFunc = (
            backoff.delay if isinstance(backoff, BackoffConfig) else backoff
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        """Build the policy described by the application settings."""
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.max_attempts,
            backoff=BackoffConfig(
                strategy=settings.backoff_strategy,
                base_seconds=settings.backoff_base_seconds,
                max_seconds=settings.backoff_max_seconds,
            ),
        )

    def backoff(self, failure_count: int) -> float:
        """Delay in seconds after ``failure_count`` failures."""
        return self._backoff(failure_count)

    def on_failure(self, task: Task, now: datetime, reason: str | None = None) -> RetryDecision:
        """
        Apply one failed attempt to ``task``.

        Args:
            task: The task as it was claimed.
            now: Time of the failure.
            reason: Failure reason, stored as ``last_error``.

        Returns:
            RetryDecision with the incremented task and either a new
            ready-time or the discard reason.
        """
        failed = task.with_failure(reason)
        if failed.failure_count < self.max_attempts:
            delay = self.backoff(failed.failure_count)
            return RetryDecision(task=failed, ready_at=now + timedelta(seconds=delay))

        return RetryDecision(
            task=failed,
            discard=MaxAttemptsExceeded(
                task_id=task.id,
                attempts=failed.failure_count,
                last_error=reason,
            ),
        )
