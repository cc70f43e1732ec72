"""
Serializers turning tasks into sorted-set members and back.
"""

from typing import Protocol

from pydantic import ValidationError

from readyq.exceptions import SerializationError
from readyq.types.task import Task


class TaskSerializer(Protocol):
    """
    Protocol for encoding tasks as store members.

    The encoded string is the task's identity in the store, so ``dumps``
    must be deterministic for a given task.
    """

    def dumps(self, task: Task) -> str:
        """Serialize a task to its member string."""
        ...

    def loads(self, data: str) -> Task:
        """
        Deserialize a member string.

        Raises:
            SerializationError: If the member is not a valid task.
        """
        ...


class JSONTaskSerializer:
    """JSON serializer backed by the pydantic model."""

    def dumps(self, task: Task) -> str:
        return task.model_dump_json()

    def loads(self, data: str | bytes) -> Task:
        try:
            return Task.model_validate_json(data)
        except ValidationError as e:
            raw = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
            raise SerializationError(
                f"Cannot decode task member: {e.error_count()} validation error(s)",
                member=raw,
            ) from e
