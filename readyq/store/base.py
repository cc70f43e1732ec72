"""
Sorted-set store interface.

The queue needs four primitives from its backing store: insert with score,
inclusive range query by score, range delete by score, and a server-side
atomic read-and-delete of a score range. Lease bookkeeping adds a few
atomic moves between two sets. Any store offering these can back a queue.
"""

from typing import Protocol

# (member, score) pairs as returned by range reads and claims.
ScoredMember = tuple[str, int]


class SortedSetStore(Protocol):
    """
    Protocol for sorted-set store implementations.

    Scores are integers. Methods raise ``StoreUnavailable`` on any
    transport or script failure; nothing is partially applied.
    """

    async def add(self, key: str, member: str, score: int) -> int:
        """
        Insert or re-score a member.

        Returns:
            1 if the member was new, 0 if it already existed.
        """
        ...

    async def remove(self, key: str, member: str) -> int:
        """Remove a member, returning how many were removed."""
        ...

    async def range_by_score(
        self,
        key: str,
        min_score: int,
        max_score: int,
        *,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[ScoredMember]:
        """
        Read members with ``min_score <= score <= max_score``.

        Ascending by score (ties by member) unless ``reverse`` is set.
        """
        ...

    async def remove_range_by_score(self, key: str, min_score: int, max_score: int) -> int:
        """Delete members in the inclusive score range, returning the count."""
        ...

    async def count(
        self,
        key: str,
        min_score: int | None = None,
        max_score: int | None = None,
    ) -> int:
        """Count members, optionally restricted to an inclusive score range."""
        ...

    async def claim(
        self,
        key: str,
        min_score: int,
        max_score: int,
        *,
        limit: int | None = None,
        lease_key: str | None = None,
        lease_score: int | None = None,
    ) -> list[ScoredMember]:
        """
        Atomically read and remove members in a score range.

        Members come back highest score first. When ``lease_key`` is given,
        every claimed member is also written to that set at ``lease_score``
        within the same atomic step.
        """
        ...

    async def release(
        self,
        lease_key: str,
        member: str,
        *,
        requeue_key: str | None = None,
        requeue_member: str | None = None,
        requeue_score: int | None = None,
    ) -> bool:
        """
        Atomically drop a lease entry and optionally requeue a member.

        The requeue only happens if the lease was still held.

        Returns:
            True if the lease entry existed.
        """
        ...

    async def reclaim_expired(
        self,
        lease_key: str,
        queue_key: str,
        min_score: int,
        max_score: int,
        requeue_score: int,
        limit: int,
    ) -> list[str]:
        """Atomically move lease entries in a score range back to the queue."""
        ...

    async def extend(self, lease_key: str, member: str, score: int) -> bool:
        """Re-score an existing lease entry; False if it no longer exists."""
        ...

    async def ping(self) -> bool:
        """Check connectivity."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...
