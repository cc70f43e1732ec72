"""
Redis sorted-set store.

Plain reads and writes map onto ZADD / ZRANGEBYSCORE / ZREMRANGEBYSCORE;
claim, release, reclaim and extend run as registered Lua scripts so that
each is a single atomic step on the server.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from readyq.exceptions import StoreUnavailable
from readyq.store.base import ScoredMember
from readyq.store.scripts import (
    CLAIM_DUE,
    EXTEND_LEASE,
    RECLAIM_EXPIRED,
    RELEASE_LEASE,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_score(raw: Any) -> int:
    # Redis hands scores back as floats or "%.17g" strings.
    return int(float(raw))


def _to_str(raw: Any) -> str:
    return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)


class RedisSortedSetStore:
    """
    ``SortedSetStore`` on ``redis.asyncio``.

    Args:
        client: A connected ``Redis`` client. ``decode_responses`` may be on
            or off; members are normalised to ``str`` either way.
    """

    def __init__(self, client: Redis):
        self._client = client
        self._claim = client.register_script(CLAIM_DUE)
        self._release = client.register_script(RELEASE_LEASE)
        self._reclaim = client.register_script(RECLAIM_EXPIRED)
        self._extend = client.register_script(EXTEND_LEASE)

    @classmethod
    def from_url(cls, url: str, socket_timeout: float | None = None) -> "RedisSortedSetStore":
        """Create a store with its own connection pool."""
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        except (RedisError, OSError) as e:
            logger.warning(
                "Redis operation failed",
                extra={"operation": operation, "error": str(e)},
            )
            raise StoreUnavailable(
                f"Redis {operation} failed: {e}", operation=operation
            ) from e

    async def add(self, key: str, member: str, score: int) -> int:
        return int(await self._call("add", lambda: self._client.zadd(key, {member: score})))

    async def remove(self, key: str, member: str) -> int:
        return int(await self._call("remove", lambda: self._client.zrem(key, member)))

    async def range_by_score(
        self,
        key: str,
        min_score: int,
        max_score: int,
        *,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[ScoredMember]:
        paging: dict[str, Any] = {}
        if limit is not None and limit > 0:
            paging = {"start": 0, "num": limit}

        if reverse:
            rows = await self._call(
                "range_by_score",
                lambda: self._client.zrevrangebyscore(
                    key, max_score, min_score, withscores=True, **paging
                ),
            )
        else:
            rows = await self._call(
                "range_by_score",
                lambda: self._client.zrangebyscore(
                    key, min_score, max_score, withscores=True, **paging
                ),
            )
        return [(_to_str(member), _to_score(score)) for member, score in rows]

    async def remove_range_by_score(self, key: str, min_score: int, max_score: int) -> int:
        return int(
            await self._call(
                "remove_range_by_score",
                lambda: self._client.zremrangebyscore(key, min_score, max_score),
            )
        )

    async def count(
        self,
        key: str,
        min_score: int | None = None,
        max_score: int | None = None,
    ) -> int:
        if min_score is None and max_score is None:
            return int(await self._call("count", lambda: self._client.zcard(key)))
        low = "-inf" if min_score is None else min_score
        high = "+inf" if max_score is None else max_score
        return int(await self._call("count", lambda: self._client.zcount(key, low, high)))

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
        keys = [key] if lease_key is None else [key, lease_key]
        args = [min_score, max_score, limit or 0, lease_score if lease_score is not None else 0]
        flat = await self._call("claim", lambda: self._claim(keys=keys, args=args))
        return [
            (_to_str(flat[i]), _to_score(flat[i + 1])) for i in range(0, len(flat), 2)
        ]

    async def release(
        self,
        lease_key: str,
        member: str,
        *,
        requeue_key: str | None = None,
        requeue_member: str | None = None,
        requeue_score: int | None = None,
    ) -> bool:
        if requeue_key is not None and requeue_member is not None:
            keys = [lease_key, requeue_key]
            args = [member, requeue_member, requeue_score or 0]
        else:
            keys = [lease_key]
            args = [member]
        held = await self._call("release", lambda: self._release(keys=keys, args=args))
        return bool(int(held))

    async def reclaim_expired(
        self,
        lease_key: str,
        queue_key: str,
        min_score: int,
        max_score: int,
        requeue_score: int,
        limit: int,
    ) -> list[str]:
        members = await self._call(
            "reclaim_expired",
            lambda: self._reclaim(
                keys=[lease_key, queue_key],
                args=[min_score, max_score, requeue_score, limit],
            ),
        )
        return [_to_str(m) for m in members]

    async def extend(self, lease_key: str, member: str, score: int) -> bool:
        held = await self._call(
            "extend", lambda: self._extend(keys=[lease_key], args=[member, score])
        )
        return bool(int(held))

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self._client.aclose()
