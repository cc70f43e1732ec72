"""
Ready-time to sorted-set score encoding.

Scores are ``MAX_TIMESTAMP - ready_at`` in epoch milliseconds: a later
ready-time gives a smaller score. Everything due at ``now`` is therefore the
contiguous range ``[encode(now), MAX_TIMESTAMP]`` at the top of the set, and
reading that range from the highest score down yields the oldest-due entry
first.
"""

from datetime import UTC, datetime, timedelta

from readyq.constants import MAX_TIMESTAMP
from readyq.exceptions import ScoreRangeError

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)


def to_millis(value: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    if value.tzinfo is None:
        raise ScoreRangeError(f"Naive datetime not allowed: {value.isoformat()}")
    return (value - _EPOCH) // _MILLISECOND


def from_millis(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + value * _MILLISECOND


class ScoreCodec:
    """
    Encode and decode ready-times as sorted-set scores.

    Args:
        max_timestamp: Score ceiling. Must stay within the exact-integer
            range of a double so that scores survive the store unchanged.
    """

    def __init__(self, max_timestamp: int = MAX_TIMESTAMP):
        if max_timestamp <= 0 or max_timestamp > MAX_TIMESTAMP:
            raise ScoreRangeError(f"max_timestamp must be in (0, {MAX_TIMESTAMP}]")
        self.max_timestamp = max_timestamp

    def _check(self, value: int, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} must be an int, got {type(value).__name__}")
        if not 0 <= value <= self.max_timestamp:
            raise ScoreRangeError(
                f"{name} {value} outside [0, {self.max_timestamp}]"
            )
        return value

    def encode(self, ready_at: int) -> int:
        """Score for a ready-time in epoch milliseconds."""
        return self.max_timestamp - self._check(ready_at, "ready_at")

    def decode(self, score: int) -> int:
        """Ready-time in epoch milliseconds for a score."""
        return self.max_timestamp - self._check(score, "score")

    def encode_datetime(self, ready_at: datetime) -> int:
        return self.encode(to_millis(ready_at))

    def decode_datetime(self, score: int) -> datetime:
        return from_millis(self.decode(score))

    def ready_window(self, now: int) -> tuple[int, int]:
        """Inclusive ``(min, max)`` score range of entries due at ``now``."""
        return self.encode(now), self.max_timestamp
