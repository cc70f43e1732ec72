"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

# Select the in-process store BEFORE any imports that might read settings
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry

from readyq.api.main import create_app
from readyq.config import Settings
from readyq.constants import BackoffStrategy
from readyq.exceptions import StoreUnavailable
from readyq.observability.metrics import MetricsCollector
from readyq.queue.client import QueueClient
from readyq.queue.retry import BackoffConfig, RetryPolicy
from readyq.store import InMemorySortedSetStore, close_store, init_store

TEST_QUEUE = "test:queue"


class FakeClock:
    """Manually advanced clock for deterministic scheduling."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FlakyStore(InMemorySortedSetStore):
    """In-memory store whose next ``fail_claims`` claims and ``fail_adds`` adds raise."""

    def __init__(self, fail_claims: int = 1, fail_adds: int = 0):
        super().__init__()
        self.fail_claims = fail_claims
        self.fail_adds = fail_adds
        self.claim_calls = 0
        self.add_calls = 0

    async def claim(self, key, min_score, max_score, **kwargs):
        self.claim_calls += 1
        if self.fail_claims > 0:
            self.fail_claims -= 1
            raise StoreUnavailable("connection refused", operation="claim")
        return await super().claim(key, min_score, max_score, **kwargs)

    async def add(self, key, member, score):
        self.add_calls += 1
        if self.fail_adds > 0:
            self.fail_adds -= 1
            raise StoreUnavailable("connection reset", operation="add")
        return await super().add(key, member, score)


@pytest.fixture
def now() -> datetime:
    """A fixed, millisecond-aligned instant."""
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(now: datetime) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry)


@pytest.fixture
def queue_name() -> str:
    return TEST_QUEUE


@pytest.fixture
def store() -> InMemorySortedSetStore:
    return InMemorySortedSetStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    """Store whose first two claims fail."""
    return FlakyStore(fail_claims=2)


@pytest.fixture
def queue_client(store: InMemorySortedSetStore, metrics: MetricsCollector) -> QueueClient:
    return QueueClient(store, TEST_QUEUE, metrics=metrics)


@pytest.fixture
def leased_client(store: InMemorySortedSetStore, metrics: MetricsCollector) -> QueueClient:
    return QueueClient(store, TEST_QUEUE, lease_seconds=30, metrics=metrics)


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Three attempts, 5 seconds between them."""
    return RetryPolicy(
        max_attempts=3,
        backoff=BackoffConfig(strategy=BackoffStrategy.CONSTANT, base_seconds=5, max_seconds=5),
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        store_backend="memory",
        queue_name=TEST_QUEUE,
        log_level="DEBUG",
        log_format="console",
        worker_poll_interval_seconds=0.01,
        reaper_interval_seconds=0.01,
        lease_seconds=5,
        worker_heartbeat_interval_seconds=1,
    )


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app bound to a fresh in-memory store."""
    await close_store()
    await init_store(InMemorySortedSetStore())

    yield create_app()

    await close_store()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
