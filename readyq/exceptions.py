"""
Exception types for the task queue.

Store transport failures, undecodable members and exhausted retries each
get their own type so callers can decide whether to retry, skip or give up.
"""


class QueueError(Exception):
    """Base exception for all queue errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """
        Initialize the error.

        Args:
            message: Human-readable error message.
            error_code: Optional error code for programmatic handling.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class StoreUnavailable(QueueError):
    """
    Raised when the backing store cannot be reached or a script fails.

    Callers should retry the whole operation; no partial claim is implied.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message, "STORE_UNAVAILABLE")
        self.operation = operation


class SerializationError(QueueError):
    """Raised when a task cannot be encoded or a stored member decoded."""

    def __init__(self, message: str, member: str | None = None) -> None:
        super().__init__(message, "SERIALIZATION_ERROR")
        self.member = member


class MaxAttemptsExceeded(QueueError):
    """Raised (or reported) when a task has used up its retry budget."""

    def __init__(self, task_id: str, attempts: int, last_error: str | None = None) -> None:
        super().__init__(
            f"Task {task_id} discarded after {attempts} attempts",
            "MAX_ATTEMPTS_EXCEEDED",
        )
        self.task_id = task_id
        self.attempts = attempts
        self.last_error = last_error


class ScoreRangeError(QueueError, ValueError):
    """Raised when a timestamp or score falls outside the encodable range."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "SCORE_RANGE_ERROR")


class ConfigurationError(QueueError):
    """Raised for invalid queue or policy configuration."""

    def __init__(self, message: str, component: str | None = None) -> None:
        super().__init__(message, "CONFIG_ERROR")
        self.component = component
