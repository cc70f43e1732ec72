"""
Poll loop and consumer-facing stream.

The loop claims a batch of due tasks, hands them to the subscriber one at a
time and waits for each to be acked or nacked before moving on, so memory
use is bounded by the batch size. Failures go through the retry policy and
are requeued with backoff or discarded.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

from readyq.constants import (
    DEFAULT_REQUEUE_ATTEMPTS,
    DISCARD_MAX_ATTEMPTS,
    DISCARD_STORE_UNAVAILABLE,
    SPAN_DELIVER_TASK,
    BackoffStrategy,
)
from readyq.exceptions import StoreUnavailable
from readyq.observability.logging import task_log_context
from readyq.observability.metrics import MetricsCollector, get_metrics
from readyq.observability.tracing import get_tracer
from readyq.queue.client import QueueClient
from readyq.queue.retry import BackoffConfig, RetryPolicy
from readyq.types.events import TaskEvent
from readyq.types.task import ClaimedTask, Task, utc_now

logger = logging.getLogger(__name__)


class Delivery:
    """
    One claimed task in a consumer's hands.

    The consumer settles it exactly once with ``ack()`` or ``nack(reason)``.
    """

    def __init__(self, claimed: ClaimedTask):
        self.claimed = claimed
        self.success: bool | None = None
        self.reason: str | None = None
        self._settled = asyncio.Event()

    @property
    def task(self) -> Task:
        return self.claimed.task

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def _settle(self, success: bool, reason: str | None) -> None:
        if self._settled.is_set():
            raise RuntimeError(f"Delivery of task {self.task.id} already settled")
        self.success = success
        self.reason = reason
        self._settled.set()

    def ack(self) -> None:
        """Signal successful processing."""
        self._settle(True, None)

    def nack(self, reason: str) -> None:
        """Signal failed processing; the task goes through the retry policy."""
        self._settle(False, reason)

    async def wait(self) -> None:
        """Block until the delivery is settled."""
        await self._settled.wait()


Subscriber = Callable[[Delivery], Awaitable[None]]
EventListener = Callable[[TaskEvent], None]

_CLOSED = object()


class TaskStream:
    """
    Async iterator of deliveries.

    Usage:
        stream = loop.stream()
        async for delivery in stream:
            ...
            delivery.ack()

    Iteration ends once the poll loop stops.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def __call__(self, delivery: Delivery) -> None:
        if self._closed:
            raise RuntimeError("TaskStream is closed")
        await self._queue.put(delivery)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "TaskStream":
        return self

    async def __anext__(self) -> Delivery:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class PollLoop:
    """
    Repeating, cancellable claim-and-deliver loop.

    Features:
    - One atomic claim per tick, at most ``batch_size`` tasks
    - Blocking, one-at-a-time delivery with ack/nack
    - Retry with backoff or discard on nack
    - Cooperative stop, checked between polls and between deliveries
    - Store errors are logged and the next tick proceeds
    - A failed requeue is retried with backoff before the task is given up

    Args:
        client: Queue client to claim from and requeue to.
        retry_policy: Decides requeue vs discard on failure.
        poll_interval: Seconds to wait after a tick that claimed nothing.
        batch_size: Maximum tasks claimed per tick.
        worker_id: Label for logs and metrics.
        delivery_timeout: Nack a delivery not settled within this many
            seconds. None waits forever.
        clock: Source of "now", injectable for tests.
        on_event: Called with every lifecycle event (success, retry, discard).
        requeue_attempts: Tries at writing a retried task back before it
            is given up as lost.
        requeue_backoff: Pause between those tries.
    """

    def __init__(
        self,
        client: QueueClient,
        retry_policy: RetryPolicy,
        *,
        poll_interval: float = 1.0,
        batch_size: int = 10,
        worker_id: str = "worker",
        delivery_timeout: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        on_event: EventListener | None = None,
        metrics: MetricsCollector | None = None,
        requeue_attempts: int = DEFAULT_REQUEUE_ATTEMPTS,
        requeue_backoff: BackoffConfig | None = None,
    ):
        if requeue_attempts < 1:
            raise ValueError("requeue_attempts must be >= 1")
        self.client = client
        self.retry_policy = retry_policy
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.worker_id = worker_id
        self.delivery_timeout = delivery_timeout
        self._clock = clock
        self._on_event = on_event
        self._metrics = metrics or get_metrics()
        self.requeue_attempts = requeue_attempts
        self.requeue_backoff = requeue_backoff or BackoffConfig(
            strategy=BackoffStrategy.EXPONENTIAL, base_seconds=0.1, max_seconds=2.0
        )

        self._subscriber: Subscriber | None = None
        self._streams: list[TaskStream] = []
        self._running = False
        self._stop_event = asyncio.Event()
        self.current: ClaimedTask | None = None

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, subscriber: Subscriber) -> None:
        """
        Register the consumer callback.

        The callback receives each ``Delivery`` and must eventually ack or
        nack it, either before returning or later. An exception raised by
        the callback nacks the delivery.
        """
        if self._subscriber is not None:
            raise RuntimeError("PollLoop already has a subscriber")
        self._subscriber = subscriber

    def stream(self) -> TaskStream:
        """Subscribe an async-iterator consumer and return it."""
        stream = TaskStream()
        self.subscribe(stream)
        self._streams.append(stream)
        return stream

    def stop(self) -> None:
        """Request a stop. In-flight deliveries finish first."""
        if self._running:
            logger.info("Poll loop stopping", extra={"worker_id": self.worker_id})
        self._running = False
        self._stop_event.set()

    async def run(self) -> None:
        """
        Poll until ``stop()`` is called.

        A ``stop()`` issued before ``run()`` makes it return without
        polling. A loop feeding a ``TaskStream`` runs once; the stream is
        closed when it stops.
        """
        if self._subscriber is None:
            raise RuntimeError("PollLoop.run() called without a subscriber")
        if any(stream.closed for stream in self._streams):
            raise RuntimeError("PollLoop.run() called after its stream was closed")
        if self._stop_event.is_set():
            logger.info("Stop requested before start", extra={"worker_id": self.worker_id})
            self._stop_event.clear()
            for stream in self._streams:
                stream.close()
            return

        logger.info(
            "Poll loop starting",
            extra={
                "worker_id": self.worker_id,
                "queue": self.client.queue_name,
                "batch_size": self.batch_size,
            },
        )
        self._running = True

        try:
            while self._running:
                try:
                    delivered = await self.poll_once()
                except StoreUnavailable as e:
                    self._metrics.record_store_error(e.operation or "poll")
                    logger.error(
                        f"Store unavailable, retrying next tick: {e.message}",
                        extra={"worker_id": self.worker_id},
                    )
                    delivered = 0

                if delivered == 0 and self._running:
                    await self._idle()
        finally:
            self._running = False
            self._stop_event.clear()
            for stream in self._streams:
                stream.close()
            logger.info("Poll loop stopped", extra={"worker_id": self.worker_id})

    async def _idle(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except TimeoutError:
            pass

    async def poll_once(self) -> int:
        """
        Claim one batch and deliver it.

        Returns:
            Number of tasks delivered.
        """
        if self._subscriber is None:
            raise RuntimeError("PollLoop has no subscriber")

        batch = await self.client.claim_due(
            now=self._clock(), limit=self.batch_size, worker_id=self.worker_id
        )

        delivered = 0
        for index, claimed in enumerate(batch):
            if self._stop_event.is_set():
                await self._restore(batch[index:])
                break
            await self._deliver(claimed)
            delivered += 1
        return delivered

    async def _restore(self, remaining: list[ClaimedTask]) -> None:
        logger.info(
            f"Returning {len(remaining)} undelivered tasks after stop",
            extra={"worker_id": self.worker_id},
        )
        for claimed in remaining:
            await self.client.restore(claimed)

    async def _deliver(self, claimed: ClaimedTask) -> None:
        assert self._subscriber is not None
        delivery = Delivery(claimed)
        started = time.monotonic()
        self.current = claimed

        try:
            with task_log_context(claimed.task_id, claimed.task.task_type, attempt=claimed.attempt):
                with get_tracer().start_as_current_span(SPAN_DELIVER_TASK) as span:
                    span.set_attribute("task_id", claimed.task_id)
                    span.set_attribute("attempt", claimed.attempt)

                    try:
                        await self._subscriber(delivery)
                    except Exception as e:
                        logger.exception("Subscriber raised while handling task")
                        if not delivery.settled:
                            delivery.nack(f"Subscriber exception: {e}")

                    await self._await_settled(delivery)
                    span.set_attribute("success", bool(delivery.success))

                try:
                    await self._complete(delivery, time.monotonic() - started)
                except StoreUnavailable as e:
                    self._metrics.record_store_error(e.operation or "complete")
                    logger.error(
                        f"Could not record task outcome: {e.message}",
                        extra={"success": delivery.success, "error": delivery.reason},
                    )
        finally:
            self.current = None

    async def _await_settled(self, delivery: Delivery) -> None:
        if self.delivery_timeout is None:
            await delivery.wait()
            return
        try:
            await asyncio.wait_for(delivery.wait(), timeout=self.delivery_timeout)
        except TimeoutError:
            logger.warning(
                "Delivery not settled in time",
                extra={"timeout": self.delivery_timeout},
            )
            delivery.nack(f"Delivery timed out after {self.delivery_timeout}s")

    async def _complete(self, delivery: Delivery, duration: float) -> None:
        claimed = delivery.claimed
        queue = self.client.queue_name

        if delivery.success:
            await self.client.finish(claimed)
            self._metrics.record_completed(queue, "succeeded", duration)
            logger.info("Task succeeded", extra={"duration": f"{duration:.3f}s"})
            self._emit(TaskEvent.task_succeeded(claimed.task, self.worker_id))
            return

        decision = self.retry_policy.on_failure(
            claimed.task, now=self._clock(), reason=delivery.reason
        )

        if decision.should_retry:
            assert decision.ready_at is not None
            try:
                await self._requeue(decision.task, decision.ready_at, claimed)
            except StoreUnavailable as e:
                self._lost(delivery, decision.task, duration, e)
                return
            self._metrics.record_retried(queue)
            self._metrics.record_completed(queue, "retried", duration)
            logger.warning(
                "Task failed, requeued",
                extra={
                    "error": delivery.reason,
                    "failure_count": decision.task.failure_count,
                    "ready_at": decision.ready_at.isoformat(),
                },
            )
            self._emit(TaskEvent.task_retried(decision.task, decision.ready_at, delivery.reason))
            return

        await self.client.finish(claimed)
        self._metrics.record_discarded(queue, DISCARD_MAX_ATTEMPTS)
        self._metrics.record_completed(queue, "discarded", duration)
        logger.error(
            str(decision.discard),
            extra={"error": delivery.reason, "failure_count": decision.task.failure_count},
        )
        self._emit(
            TaskEvent.task_discarded(
                task_id=decision.task.id,
                task_type=decision.task.task_type,
                reason=DISCARD_MAX_ATTEMPTS,
                error=delivery.reason,
                attempts=decision.task.failure_count,
            )
        )

    async def _requeue(self, task: Task, ready_at: datetime, claimed: ClaimedTask) -> None:
        """Write a retried task back, retrying store failures with backoff."""
        for attempt in range(1, self.requeue_attempts + 1):
            try:
                await self.client.requeue(task, ready_at, claimed=claimed)
                return
            except StoreUnavailable as e:
                self._metrics.record_store_error(e.operation or "requeue")
                if attempt == self.requeue_attempts:
                    raise
                delay = self.requeue_backoff.delay(attempt)
                logger.warning(
                    f"Requeue failed, retrying in {delay:.2f}s: {e.message}",
                    extra={"attempt": attempt, "max_attempts": self.requeue_attempts},
                )
                await asyncio.sleep(delay)

    def _lost(
        self, delivery: Delivery, task: Task, duration: float, error: StoreUnavailable
    ) -> None:
        queue = self.client.queue_name

        if self.client.leasing_enabled:
            # The lease entry is still in place; the reaper returns the task.
            logger.error(
                f"Could not requeue task, leaving it to lease expiry: {error.message}",
                extra={"error": delivery.reason},
            )
            return

        self._metrics.record_discarded(queue, DISCARD_STORE_UNAVAILABLE)
        self._metrics.record_completed(queue, "discarded", duration)
        logger.error(
            f"Could not requeue task, discarding it: {error.message}",
            extra={"error": delivery.reason, "failure_count": task.failure_count},
        )
        self._emit(
            TaskEvent.task_discarded(
                task_id=task.id,
                task_type=task.task_type,
                reason=DISCARD_STORE_UNAVAILABLE,
                error=error.message,
                attempts=task.failure_count,
            )
        )

    def _emit(self, event: TaskEvent) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception("Event listener failed", extra={"event": event.event_type})
