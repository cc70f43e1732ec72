"""
Lease reaper for recovering expired claims.

Only meaningful when leasing is enabled. The reaper periodically moves
claimed tasks whose lease ran out (the consumer crashed or stalled) back
into the queue, due immediately and with their failure count unchanged.
This is what turns a consumer crash into a redelivery instead of a loss.
"""

import asyncio
import logging
import signal

from readyq.config import get_settings
from readyq.constants import SPAN_RECLAIM_LEASES
from readyq.exceptions import ConfigurationError, StoreUnavailable
from readyq.observability.logging import setup_logging
from readyq.observability.metrics import get_metrics, setup_metrics
from readyq.observability.tracing import get_tracer
from readyq.queue.client import QueueClient
from readyq.store import close_store, init_store

logger = logging.getLogger(__name__)


class Reaper:
    """
    Lease reaper.

    Each run:
    1. Finds lease entries whose deadline has passed
    2. Moves them back to the queue in one atomic step
    3. Records metrics for monitoring
    """

    def __init__(
        self,
        client: QueueClient,
        interval_seconds: float | None = None,
        batch_size: int | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            client: Queue client with leasing enabled.
            interval_seconds: Seconds between reaper runs.
            batch_size: Maximum leases reclaimed per run.
        """
        if not client.leasing_enabled:
            raise ConfigurationError("Reaper requires lease_seconds to be set", "reaper")
        settings = get_settings()
        self.client = client
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.batch_size = batch_size or settings.reaper_batch_size
        self._running = False
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(f"Reaper starting with interval {self.interval}s")
        self._running = True

        while self._running:
            try:
                recovered = await self.run_once()
                if recovered > 0:
                    logger.info(f"Recovered {recovered} expired leases")
            except StoreUnavailable as e:
                self._metrics.record_store_error(e.operation or "reclaim_expired")
                logger.error(f"Error in reaper loop: {e.message}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._running = False
        self._stop_event.set()

    async def run_once(self) -> int:
        """
        Reclaim until no expired lease is left (or a short batch comes back).

        Returns:
            Number of tasks returned to the queue.
        """
        total = 0
        with get_tracer().start_as_current_span(SPAN_RECLAIM_LEASES) as span:
            while True:
                count = await self.client.reclaim_expired(limit=self.batch_size)
                total += count
                if count < self.batch_size:
                    break
            span.set_attribute("reclaimed", total)
        return total


async def run_async() -> None:
    """Run the reaper asynchronously."""
    setup_logging()
    setup_metrics()
    settings = get_settings()
    store = await init_store()

    client = QueueClient(store, settings.queue_name, lease_seconds=settings.lease_seconds)
    reaper = Reaper(client)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(reaper.stop()))

    try:
        await reaper.start()
    finally:
        await close_store()


def run() -> None:
    """Run the reaper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
