"""
Unit tests for the in-memory sorted-set store.
"""

import pytest

from readyq.store import InMemorySortedSetStore


class TestInMemorySortedSetStore:
    """Tests for the Redis-like semantics of the in-memory store."""

    @pytest.mark.asyncio
    async def test_add_is_upsert(self, store: InMemorySortedSetStore):
        """Adding an existing member only updates its score."""
        assert await store.add("z", "a", 5) == 1
        assert await store.add("z", "a", 7) == 0

        assert await store.range_by_score("z", 0, 100) == [("a", 7)]

    @pytest.mark.asyncio
    async def test_range_order_and_ties(self, store: InMemorySortedSetStore):
        """Ascending by score, ties broken by member."""
        await store.add("z", "b", 1)
        await store.add("z", "a", 1)
        await store.add("z", "c", 0)

        assert await store.range_by_score("z", 0, 10) == [("c", 0), ("a", 1), ("b", 1)]
        assert await store.range_by_score("z", 0, 10, reverse=True, limit=2) == [
            ("b", 1),
            ("a", 1),
        ]

    @pytest.mark.asyncio
    async def test_remove_and_remove_range(self, store: InMemorySortedSetStore):
        for i in range(5):
            await store.add("z", f"m{i}", i)

        assert await store.remove("z", "m0") == 1
        assert await store.remove("z", "m0") == 0
        assert await store.remove_range_by_score("z", 2, 3) == 2
        assert await store.range_by_score("z", 0, 10) == [("m1", 1), ("m4", 4)]

    @pytest.mark.asyncio
    async def test_count(self, store: InMemorySortedSetStore):
        for i in range(4):
            await store.add("z", f"m{i}", i * 10)

        assert await store.count("z") == 4
        assert await store.count("z", 10, 20) == 2
        assert await store.count("missing") == 0

    @pytest.mark.asyncio
    async def test_claim_highest_first_with_lease(self, store: InMemorySortedSetStore):
        """Claim removes from the top of the window and records leases."""
        for i in range(5):
            await store.add("q", f"m{i}", i)

        claimed = await store.claim("q", 1, 10, limit=2, lease_key="q:leases", lease_score=99)

        assert claimed == [("m4", 4), ("m3", 3)]
        assert await store.range_by_score("q", 0, 10) == [("m0", 0), ("m1", 1), ("m2", 2)]
        assert await store.range_by_score("q:leases", 0, 100) == [("m3", 99), ("m4", 99)]

    @pytest.mark.asyncio
    async def test_claim_unlimited(self, store: InMemorySortedSetStore):
        for i in range(3):
            await store.add("q", f"m{i}", i)

        claimed = await store.claim("q", 0, 10)

        assert [m for m, _ in claimed] == ["m2", "m1", "m0"]
        assert await store.count("q") == 0

    @pytest.mark.asyncio
    async def test_release_requeues_only_when_held(self, store: InMemorySortedSetStore):
        await store.add("q:leases", "old", 10)

        assert await store.release("q:leases", "old", requeue_key="q", requeue_member="new", requeue_score=3)
        assert await store.range_by_score("q", 0, 10) == [("new", 3)]

        assert not await store.release("q:leases", "old", requeue_key="q", requeue_member="dup", requeue_score=3)
        assert await store.count("q") == 1

    @pytest.mark.asyncio
    async def test_reclaim_expired(self, store: InMemorySortedSetStore):
        await store.add("q:leases", "late", 50)
        await store.add("q:leases", "fresh", 5)

        reclaimed = await store.reclaim_expired("q:leases", "q", 40, 100, requeue_score=60, limit=10)

        assert reclaimed == ["late"]
        assert await store.range_by_score("q", 0, 100) == [("late", 60)]
        assert await store.range_by_score("q:leases", 0, 100) == [("fresh", 5)]

    @pytest.mark.asyncio
    async def test_extend(self, store: InMemorySortedSetStore):
        await store.add("q:leases", "m", 5)

        assert await store.extend("q:leases", "m", 1)
        assert await store.range_by_score("q:leases", 0, 10) == [("m", 1)]
        assert not await store.extend("q:leases", "gone", 1)

    @pytest.mark.asyncio
    async def test_ping(self, store: InMemorySortedSetStore):
        assert await store.ping() is True
