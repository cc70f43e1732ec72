"""
In-process sorted-set store.

Follows the Redis ordering rules (ascending score, ties broken by member)
and serializes every operation behind one ``asyncio.Lock``, so claims are
mutually exclusive within an event loop. Used for tests and local runs;
it offers no sharing across processes.
"""

import asyncio
import logging

from readyq.store.base import ScoredMember

logger = logging.getLogger(__name__)


class InMemorySortedSetStore:
    """Dictionary-backed ``SortedSetStore``."""

    def __init__(self) -> None:
        self._sets: dict[str, dict[str, int]] = {}
        self._lock = asyncio.Lock()

    def _range(
        self,
        key: str,
        min_score: int | None,
        max_score: int | None,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[ScoredMember]:
        entries = [
            (member, score)
            for member, score in self._sets.get(key, {}).items()
            if (min_score is None or score >= min_score)
            and (max_score is None or score <= max_score)
        ]
        entries.sort(key=lambda e: (e[1], e[0]), reverse=reverse)
        if limit is not None and limit > 0:
            entries = entries[:limit]
        return entries

    def _discard(self, key: str, member: str) -> int:
        zset = self._sets.get(key)
        if zset is None or member not in zset:
            return 0
        del zset[member]
        if not zset:
            del self._sets[key]
        return 1

    def _add(self, key: str, member: str, score: int) -> int:
        zset = self._sets.setdefault(key, {})
        is_new = member not in zset
        zset[member] = score
        return int(is_new)

    async def add(self, key: str, member: str, score: int) -> int:
        async with self._lock:
            return self._add(key, member, score)

    async def remove(self, key: str, member: str) -> int:
        async with self._lock:
            return self._discard(key, member)

    async def range_by_score(
        self,
        key: str,
        min_score: int,
        max_score: int,
        *,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[ScoredMember]:
        async with self._lock:
            return self._range(key, min_score, max_score, reverse, limit)

    async def remove_range_by_score(self, key: str, min_score: int, max_score: int) -> int:
        async with self._lock:
            entries = self._range(key, min_score, max_score)
            for member, _ in entries:
                self._discard(key, member)
            return len(entries)

    async def count(
        self,
        key: str,
        min_score: int | None = None,
        max_score: int | None = None,
    ) -> int:
        async with self._lock:
            return len(self._range(key, min_score, max_score))

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
        async with self._lock:
            entries = self._range(key, min_score, max_score, reverse=True, limit=limit)
            for member, _ in entries:
                self._discard(key, member)
                if lease_key is not None and lease_score is not None:
                    self._add(lease_key, member, lease_score)
            return entries

    async def release(
        self,
        lease_key: str,
        member: str,
        *,
        requeue_key: str | None = None,
        requeue_member: str | None = None,
        requeue_score: int | None = None,
    ) -> bool:
        async with self._lock:
            held = bool(self._discard(lease_key, member))
            if held and requeue_key is not None and requeue_member is not None:
                self._add(requeue_key, requeue_member, requeue_score or 0)
            return held

    async def reclaim_expired(
        self,
        lease_key: str,
        queue_key: str,
        min_score: int,
        max_score: int,
        requeue_score: int,
        limit: int,
    ) -> list[str]:
        async with self._lock:
            entries = self._range(lease_key, min_score, max_score, reverse=True, limit=limit)
            for member, _ in entries:
                self._discard(lease_key, member)
                self._add(queue_key, member, requeue_score)
            return [member for member, _ in entries]

    async def extend(self, lease_key: str, member: str, score: int) -> bool:
        async with self._lock:
            zset = self._sets.get(lease_key)
            if zset is None or member not in zset:
                return False
            zset[member] = score
            return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        logger.debug("In-memory store closed", extra={"keys": len(self._sets)})
