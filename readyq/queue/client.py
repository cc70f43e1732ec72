"""
Queue client: enqueue, atomic claim of due tasks, and requeue.

The client is stateless between calls. Any number of clients, in any
number of processes, may point at the same queue key; the store's atomic
claim is the only coordination between them.
"""

import logging
from datetime import datetime, timedelta

from readyq.constants import DISCARD_MALFORMED, LEASE_KEY_SUFFIX, SPAN_CLAIM_DUE, SPAN_ENQUEUE_TASK
from readyq.exceptions import ConfigurationError, SerializationError, StoreUnavailable
from readyq.observability.metrics import MetricsCollector, get_metrics
from readyq.observability.tracing import get_tracer
from readyq.queue.codec import ScoreCodec, to_millis
from readyq.queue.serializers import JSONTaskSerializer, TaskSerializer
from readyq.store.base import SortedSetStore
from readyq.types.task import ClaimedTask, Task, utc_now

logger = logging.getLogger(__name__)


class QueueClient:
    """
    Client for one named queue.

    Entries live in a single sorted set keyed by ``queue_name`` with
    ``score = codec.encode(ready_at)``. When ``lease_seconds`` is set,
    claimed members are also recorded in ``<queue_name>:leases`` until they
    are finished or requeued, and expired leases can be reclaimed. Without
    it a claim is a plain remove-and-return, and a task whose consumer dies
    before finishing is gone.

    Args:
        store: The backing sorted-set store.
        queue_name: Key of the sorted set.
        codec: Score codec.
        serializer: Task serializer.
        lease_seconds: Enables leasing with this lease length.
        metrics: Metrics collector. Defaults to the process-wide one.
    """

    def __init__(
        self,
        store: SortedSetStore,
        queue_name: str,
        *,
        codec: ScoreCodec | None = None,
        serializer: TaskSerializer | None = None,
        lease_seconds: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        if not queue_name or not queue_name.strip():
            raise ConfigurationError("queue_name must be a non-empty string", "queue")
        if lease_seconds is not None and lease_seconds <= 0:
            raise ConfigurationError("lease_seconds must be positive", "queue")

        self._store = store
        self.queue_name = queue_name.strip()
        self.codec = codec or ScoreCodec()
        self._serializer = serializer or JSONTaskSerializer()
        self.lease_seconds = lease_seconds
        self._metrics = metrics or get_metrics()

    @property
    def leasing_enabled(self) -> bool:
        return self.lease_seconds is not None

    @property
    def lease_key(self) -> str:
        return f"{self.queue_name}{LEASE_KEY_SUFFIX}"

    def _lease_score(self, now: datetime, seconds: float | None = None) -> int:
        deadline = now + timedelta(seconds=seconds or self.lease_seconds or 0)
        return self.codec.encode_datetime(deadline)

    async def enqueue(self, task: Task, ready_at: datetime | None = None) -> int:
        """
        Insert a task, eligible for claim from ``ready_at`` (default: now).

        Inserting an identical member again only re-scores it; callers that
        need one entry per logical task rely on ``Task.id`` being unique.

        Args:
            task: The task to store.
            ready_at: Earliest claim time. Must be timezone-aware.

        Returns:
            The score the entry was stored with.

        Raises:
            ScoreRangeError: If ``ready_at`` cannot be encoded.
            StoreUnavailable: If the store call fails.
        """
        ready_at = ready_at or utc_now()
        score = self.codec.encode_datetime(ready_at)
        member = self._serializer.dumps(task)

        with get_tracer().start_as_current_span(SPAN_ENQUEUE_TASK) as span:
            span.set_attribute("queue", self.queue_name)
            span.set_attribute("task_id", task.id)
            await self._store.add(self.queue_name, member, score)

        self._metrics.record_enqueued(self.queue_name, task.task_type)
        logger.debug(
            "Task enqueued",
            extra={
                "queue": self.queue_name,
                "task_id": task.id,
                "ready_at": ready_at.isoformat(),
                "failure_count": task.failure_count,
            },
        )
        return score

    async def requeue(
        self,
        task: Task,
        next_ready_at: datetime,
        claimed: ClaimedTask | None = None,
    ) -> bool:
        """
        Put a task back for a later attempt.

        The caller updates ``failure_count`` beforehand; this method stores
        the task exactly as given. With leasing and ``claimed`` given, the
        lease is dropped and the task requeued in one atomic step, and
        nothing is requeued if the lease was already reclaimed (the reaper
        has put the claimed version back).

        Returns:
            True if the task was stored.
        """
        if not (self.leasing_enabled and claimed is not None):
            await self.enqueue(task, next_ready_at)
            return True

        score = self.codec.encode_datetime(next_ready_at)
        held = await self._store.release(
            self.lease_key,
            claimed.member,
            requeue_key=self.queue_name,
            requeue_member=self._serializer.dumps(task),
            requeue_score=score,
        )
        if held:
            self._metrics.record_enqueued(self.queue_name, task.task_type)
        else:
            logger.warning(
                "Lease lost before requeue; task already reclaimed",
                extra={"queue": self.queue_name, "task_id": task.id},
            )
        return held

    async def restore(self, claimed: ClaimedTask) -> bool:
        """Return an undelivered claimed task at its original ready-time."""
        return await self.requeue(claimed.task, claimed.ready_at, claimed=claimed)

    async def finish(self, claimed: ClaimedTask) -> bool:
        """
        Mark a claimed task as done (succeeded or discarded).

        Only touches the lease set; without leasing the claim already
        removed the entry and this is a no-op.

        Returns:
            False if leasing is on and the lease had already expired.
        """
        if not self.leasing_enabled:
            return True
        held = await self._store.release(self.lease_key, claimed.member)
        if not held:
            logger.warning(
                "Finished task whose lease had expired",
                extra={"queue": self.queue_name, "task_id": claimed.task_id},
            )
        return held

    async def claim_due(
        self,
        now: datetime | None = None,
        limit: int | None = None,
        worker_id: str = "unknown",
    ) -> list[ClaimedTask]:
        """
        Atomically remove and return every task due at ``now``.

        Tasks come back oldest ready-time first; ties are in the store's
        native order and should be treated as unspecified. A member that
        cannot be decoded is logged, counted as discarded and skipped; it
        has already left the queue.

        Args:
            now: Claim instant. Defaults to the current time.
            limit: Claim at most this many entries.
            worker_id: Label for metrics and logs.

        Raises:
            StoreUnavailable: If the claim fails. Nothing was claimed.
        """
        now = now or utc_now()
        now_ms = to_millis(now)
        min_score, max_score = self.codec.ready_window(now_ms)
        lease_key = self.lease_key if self.leasing_enabled else None
        lease_score = self._lease_score(now) if self.leasing_enabled else None

        with get_tracer().start_as_current_span(SPAN_CLAIM_DUE) as span:
            span.set_attribute("queue", self.queue_name)
            span.set_attribute("worker_id", worker_id)
            entries = await self._store.claim(
                self.queue_name,
                min_score,
                max_score,
                limit=limit,
                lease_key=lease_key,
                lease_score=lease_score,
            )
            span.set_attribute("claimed", len(entries))

        self._metrics.record_claimed(self.queue_name, worker_id, len(entries))

        claimed: list[ClaimedTask] = []
        malformed: list[str] = []
        for member, score in entries:
            try:
                task = self._serializer.loads(member)
            except SerializationError as e:
                malformed.append(member)
                self._metrics.record_discarded(self.queue_name, DISCARD_MALFORMED)
                logger.error(
                    "Discarding malformed queue entry",
                    extra={
                        "queue": self.queue_name,
                        "error": e.message,
                        "member": member[:200],
                    },
                )
                continue
            claimed.append(
                ClaimedTask(
                    task=task,
                    member=member,
                    ready_at=self.codec.decode_datetime(score),
                    claimed_at=now,
                )
            )

        if malformed and lease_key is not None:
            await self._drop_malformed_leases(malformed)

        if claimed:
            logger.info(
                f"Claimed {len(claimed)} tasks",
                extra={"queue": self.queue_name, "worker_id": worker_id},
            )
        return claimed

    async def _drop_malformed_leases(self, members: list[str]) -> None:
        # The good part of the batch is already claimed; a failure here only
        # means the reaper will bring the bad entry back to be dropped again.
        for member in members:
            try:
                await self._store.remove(self.lease_key, member)
            except StoreUnavailable as e:
                logger.warning(
                    "Could not drop lease of malformed entry",
                    extra={"queue": self.queue_name, "error": e.message},
                )

    async def extend_lease(
        self,
        claimed: ClaimedTask,
        seconds: float | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Push a held lease's deadline to ``now + seconds``.

        Returns:
            False if leasing is off or the lease is gone.
        """
        if not self.leasing_enabled:
            return False
        now = now or utc_now()
        return await self._store.extend(
            self.lease_key, claimed.member, self._lease_score(now, seconds)
        )

    async def reclaim_expired(self, now: datetime | None = None, limit: int = 100) -> int:
        """
        Move tasks whose lease expired by ``now`` back into the queue.

        Reclaimed tasks become due immediately with their failure count
        unchanged.

        Returns:
            Number of tasks returned to the queue.
        """
        if not self.leasing_enabled:
            return 0
        now = now or utc_now()
        min_score, max_score = self.codec.ready_window(to_millis(now))
        members = await self._store.reclaim_expired(
            self.lease_key,
            self.queue_name,
            min_score,
            max_score,
            requeue_score=self.codec.encode_datetime(now),
            limit=limit,
        )
        if members:
            self._metrics.record_lease_expired(self.queue_name, len(members))
            logger.info(
                f"Reclaimed {len(members)} expired leases",
                extra={"queue": self.queue_name},
            )
        return len(members)

    async def depth(self) -> int:
        """Number of entries waiting in the queue, due or not."""
        return await self._store.count(self.queue_name)

    async def due_count(self, now: datetime | None = None) -> int:
        """Number of entries due at ``now``."""
        min_score, max_score = self.codec.ready_window(to_millis(now or utc_now()))
        return await self._store.count(self.queue_name, min_score, max_score)

    async def leased_count(self) -> int:
        """Number of claimed tasks still holding a lease."""
        if not self.leasing_enabled:
            return 0
        return await self._store.count(self.lease_key)
