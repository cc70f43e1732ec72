"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class TaskState(StrEnum):
    """
    Task lifecycle states.

    State transitions:
    - PENDING -> DUE (ready-time passed)
    - DUE -> CLAIMED (atomic claim)
    - CLAIMED -> SUCCEEDED (ack)
    - CLAIMED -> FAILED (nack)
    - FAILED -> PENDING (retry with backoff)
    - FAILED -> DISCARDED (max attempts exceeded)
    - CLAIMED -> DUE (lease expired - crash recovery, leasing only)
    """

    PENDING = "pending"
    DUE = "due"
    CLAIMED = "claimed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DISCARDED = "discarded"


class BackoffStrategy(StrEnum):
    """Supported retry backoff curves."""

    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class StoreBackend(StrEnum):
    """Supported sorted-set store backends."""

    REDIS = "redis"
    MEMORY = "memory"


# Largest integer a double-precision score holds exactly (2**53 - 1).
MAX_TIMESTAMP = 9_007_199_254_740_991

# Default values
DEFAULT_QUEUE_NAME = "readyq:tasks"
DEFAULT_TASK_TYPE = "default"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BATCH_SIZE = 10
DEFAULT_REQUEUE_ATTEMPTS = 3
LEASE_KEY_SUFFIX = ":leases"

# Upper bound on an API scheduling delay (ten years)
MAX_DELAY_SECONDS = 315_360_000

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "readyq_queue_depth"
METRIC_TASKS_ENQUEUED = "readyq_tasks_enqueued_total"
METRIC_TASKS_CLAIMED = "readyq_tasks_claimed_total"
METRIC_TASKS_COMPLETED = "readyq_tasks_completed_total"
METRIC_TASKS_RETRIED = "readyq_tasks_retried_total"
METRIC_TASKS_DISCARDED = "readyq_tasks_discarded_total"
METRIC_TASK_DURATION = "readyq_task_duration_seconds"
METRIC_STORE_ERRORS = "readyq_store_errors_total"
METRIC_LEASE_EXPIRED = "readyq_lease_expired_total"

# Trace span names
SPAN_ENQUEUE_TASK = "enqueue_task"
SPAN_CLAIM_DUE = "claim_due"
SPAN_DELIVER_TASK = "deliver_task"
SPAN_RECLAIM_LEASES = "reclaim_leases"

# Event types
EVENT_TASK_SUCCEEDED = "task.succeeded"
EVENT_TASK_RETRIED = "task.retried"
EVENT_TASK_DISCARDED = "task.discarded"

# Discard reasons
DISCARD_MAX_ATTEMPTS = "max_attempts_exceeded"
DISCARD_MALFORMED = "malformed_payload"
DISCARD_STORE_UNAVAILABLE = "store_unavailable"
