"""
Worker process for executing tasks.

The worker runs a poll loop against the configured queue, dispatches each
delivery to the handler registered for its task type, and acks or nacks it
from the handler's result.
"""

import asyncio
import logging
import os
import signal

from readyq.config import get_settings
from readyq.observability.logging import setup_logging
from readyq.observability.metrics import setup_metrics
from readyq.observability.tracing import setup_tracing
from readyq.queue.client import QueueClient
from readyq.queue.retry import RetryPolicy
from readyq.store import SortedSetStore, close_store, init_store
from readyq.types.task import TaskContext
from readyq.worker.handlers import execute_task
from readyq.worker.stream import Delivery, PollLoop

logger = logging.getLogger(__name__)


class Worker:
    """
    Task worker driven by a ``PollLoop``.

    Features:
    - Handler dispatch by ``task_type``
    - Lease heartbeat for the in-flight task when leasing is enabled
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        store: SortedSetStore,
        worker_id: str | None = None,
        batch_size: int | None = None,
        poll_interval: float | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        """
        Initialize the worker.

        Args:
            store: The backing store.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            batch_size: Number of tasks to claim per poll.
            poll_interval: Seconds between polls when the queue is idle.
            retry_policy: Retry policy. Defaults to the configured one.
        """
        settings = get_settings()

        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.retry_policy = retry_policy or RetryPolicy.from_settings(settings)
        self.heartbeat_interval = settings.worker_heartbeat_interval_seconds

        self.client = QueueClient(
            store,
            settings.queue_name,
            lease_seconds=settings.lease_seconds,
        )
        self.loop = PollLoop(
            self.client,
            self.retry_policy,
            poll_interval=poll_interval or settings.worker_poll_interval_seconds,
            batch_size=batch_size or settings.worker_batch_size,
            worker_id=self.worker_id,
        )
        self.loop.subscribe(self._handle)
        self._heartbeat_task: asyncio.Task | None = None

    async def _handle(self, delivery: Delivery) -> None:
        context = TaskContext(
            task=delivery.task,
            attempt=delivery.claimed.attempt,
            max_attempts=self.retry_policy.max_attempts,
            worker_id=self.worker_id,
        )
        result = await execute_task(context)
        if result.success:
            delivery.ack()
        else:
            delivery.nack(result.error or "Unknown error")

    async def start(self) -> None:
        """Run until stopped."""
        if self.client.leasing_enabled:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

        try:
            await self.loop.run()
        finally:
            if self._heartbeat_task:
                self._heartbeat_task.cancel()
                try:
                    await self._heartbeat_task
                except asyncio.CancelledError:
                    pass

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        self.loop.stop()

    async def _heartbeat_loop(self) -> None:
        """
        Periodically extend the lease of the task being handled.

        Keeps long-running tasks from being reclaimed by the reaper.
        """
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            claimed = self.loop.current
            if claimed is None:
                continue
            try:
                extended = await self.client.extend_lease(claimed)
            except Exception as e:
                logger.exception(f"Error in heartbeat loop: {e}")
                continue
            if not extended:
                logger.warning(
                    "Lease lost while task in flight",
                    extra={"task_id": claimed.task_id},
                )


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_metrics()
    setup_tracing()
    store = await init_store()

    worker = Worker(store)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(worker.stop()))

    try:
        await worker.start()
    finally:
        await close_store()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
