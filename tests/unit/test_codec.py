"""
Unit tests for the score codec.
"""

import random
from datetime import UTC, datetime, timedelta, timezone

import pytest

from readyq.constants import MAX_TIMESTAMP
from readyq.exceptions import ScoreRangeError
from readyq.queue.codec import ScoreCodec, from_millis, to_millis
from readyq.store import InMemorySortedSetStore


class TestScoreCodec:
    """Tests for ScoreCodec encode/decode."""

    @pytest.fixture
    def codec(self) -> ScoreCodec:
        return ScoreCodec()

    def test_encode_known_values(self, codec: ScoreCodec):
        """Score is the distance from the ceiling."""
        assert codec.encode(0) == MAX_TIMESTAMP
        assert codec.encode(MAX_TIMESTAMP) == 0
        assert codec.encode(1_700_000_000_000) == MAX_TIMESTAMP - 1_700_000_000_000

    def test_decode_inverts_encode(self, codec: ScoreCodec):
        """decode(encode(t)) == t over random timestamps."""
        rng = random.Random(1234)
        samples = [rng.randint(0, MAX_TIMESTAMP) for _ in range(500)] + [0, MAX_TIMESTAMP]

        for t in samples:
            assert codec.decode(codec.encode(t)) == t

    def test_later_time_gets_smaller_score(self, codec: ScoreCodec):
        """Encoding is strictly decreasing."""
        rng = random.Random(99)
        for _ in range(200):
            a, b = sorted(rng.sample(range(0, 2_000_000_000_000), 2))
            assert codec.encode(a) > codec.encode(b)

    def test_ready_window(self, codec: ScoreCodec):
        """The due window is [encode(now), ceiling]."""
        now = 1_700_000_000_000
        assert codec.ready_window(now) == (codec.encode(now), MAX_TIMESTAMP)

    @pytest.mark.parametrize("value", [-1, MAX_TIMESTAMP + 1])
    def test_out_of_range_rejected(self, codec: ScoreCodec, value: int):
        """Values outside [0, MAX_TIMESTAMP] raise."""
        with pytest.raises(ScoreRangeError):
            codec.encode(value)
        with pytest.raises(ScoreRangeError):
            codec.decode(value)

    def test_range_error_is_value_error(self, codec: ScoreCodec):
        """Callers catching ValueError still see range errors."""
        with pytest.raises(ValueError):
            codec.encode(-5)

    @pytest.mark.parametrize("value", [1.5, "100", True, None])
    def test_non_integer_rejected(self, codec: ScoreCodec, value):
        """Only real ints are accepted."""
        with pytest.raises(TypeError):
            codec.encode(value)

    def test_custom_ceiling(self):
        """A smaller ceiling shifts scores and bounds."""
        codec = ScoreCodec(max_timestamp=1000)

        assert codec.encode(250) == 750
        assert codec.decode(750) == 250
        with pytest.raises(ScoreRangeError):
            codec.encode(1001)

    @pytest.mark.parametrize("ceiling", [0, -1, MAX_TIMESTAMP + 1])
    def test_invalid_ceiling(self, ceiling: int):
        """The ceiling must fit the exact-integer range of a double."""
        with pytest.raises(ScoreRangeError):
            ScoreCodec(max_timestamp=ceiling)

    def test_datetime_round_trip(self, codec: ScoreCodec, now: datetime):
        """Millisecond-aligned datetimes survive encoding."""
        later = now + timedelta(milliseconds=1234)
        assert codec.decode_datetime(codec.encode_datetime(later)) == later

    def test_datetime_before_epoch_rejected(self, codec: ScoreCodec):
        """Pre-1970 ready-times have no score."""
        with pytest.raises(ScoreRangeError):
            codec.encode_datetime(datetime(1969, 12, 31, tzinfo=UTC))


class TestMillis:
    """Tests for datetime <-> epoch millisecond conversion."""

    def test_epoch_is_zero(self):
        assert to_millis(datetime(1970, 1, 1, tzinfo=UTC)) == 0
        assert from_millis(0) == datetime(1970, 1, 1, tzinfo=UTC)

    def test_sub_millisecond_truncated(self):
        """Microseconds below a millisecond are dropped."""
        value = datetime(2026, 1, 1, 0, 0, 0, 999, tzinfo=UTC)
        assert from_millis(to_millis(value)) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_naive_datetime_rejected(self):
        """A datetime without tzinfo is ambiguous."""
        with pytest.raises(ScoreRangeError):
            to_millis(datetime(2026, 1, 1))

    def test_other_timezones_normalised(self):
        """The same instant in another zone gives the same millis."""
        utc = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        plus_two = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert to_millis(plus_two) == to_millis(utc)


class TestScoreOrdering:
    """The due window selects exactly the due entries, oldest first."""

    @pytest.mark.asyncio
    async def test_window_matches_due_set(self):
        """For random ready-times, the window holds exactly those <= now."""
        codec = ScoreCodec()
        store = InMemorySortedSetStore()
        rng = random.Random(2026)
        base = 1_800_000_000_000

        ready = {f"m{i}": base + rng.randint(-100_000, 100_000) for i in range(300)}
        for member, ready_at in ready.items():
            await store.add("q", member, codec.encode(ready_at))

        for now in (base - 200_000, base - 1, base, base + 50_000, base + 200_000):
            min_score, max_score = codec.ready_window(now)
            got = await store.range_by_score("q", min_score, max_score, reverse=True)

            expected = {m for m, t in ready.items() if t <= now}
            assert {m for m, _ in got} == expected

            times = [codec.decode(score) for _, score in got]
            assert times == sorted(times)

    @pytest.mark.asyncio
    async def test_boundary_is_inclusive(self):
        """An entry ready exactly at now is due; one millisecond later is not."""
        codec = ScoreCodec()
        store = InMemorySortedSetStore()
        now = 1_800_000_000_000

        await store.add("q", "at-now", codec.encode(now))
        await store.add("q", "just-after", codec.encode(now + 1))

        min_score, max_score = codec.ready_window(now)
        got = await store.range_by_score("q", min_score, max_score)

        assert [m for m, _ in got] == ["at-now"]
