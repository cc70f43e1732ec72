"""
Integration tests for the API endpoints.
"""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient

from readyq.constants import MAX_DELAY_SECONDS, MAX_TIMESTAMP
from readyq.queue.codec import to_millis


class TestTaskAPI:
    """Integration tests for task API endpoints."""

    @pytest.mark.asyncio
    async def test_enqueue_task_success(self, client: AsyncClient):
        """Test successful task submission."""
        ready_at = datetime(2030, 1, 1, tzinfo=UTC)

        response = await client.post(
            "/v1/tasks",
            json={
                "task_type": "echo",
                "payload": {"message": "hello"},
                "ready_at": ready_at.isoformat(),
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["task_type"] == "echo"
        assert data["score"] == MAX_TIMESTAMP - to_millis(ready_at)
        assert len(data["id"]) == 32

    @pytest.mark.asyncio
    async def test_enqueue_with_delay(self, client: AsyncClient):
        """A delay schedules the task relative to now."""
        before = datetime.now(UTC)

        response = await client.post(
            "/v1/tasks",
            json={"task_type": "echo", "delay_seconds": 60},
        )

        assert response.status_code == 201
        ready_at = datetime.fromisoformat(response.json()["ready_at"])
        assert ready_at >= before + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_enqueue_defaults_to_now(self, client: AsyncClient):
        response = await client.post("/v1/tasks", json={"payload": [1, 2, 3]})

        assert response.status_code == 201
        assert response.json()["task_type"] == "default"

    @pytest.mark.asyncio
    async def test_enqueue_naive_ready_at_rejected(self, client: AsyncClient):
        """Test that a ready_at without timezone is rejected."""
        response = await client.post(
            "/v1/tasks",
            json={"task_type": "echo", "ready_at": "2030-01-01T00:00:00"},
        )

        assert response.status_code == 422
        assert "timezone" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_enqueue_before_epoch_rejected(self, client: AsyncClient):
        """Test that an unencodable ready_at is rejected."""
        response = await client.post(
            "/v1/tasks",
            json={"task_type": "echo", "ready_at": "1960-01-01T00:00:00+00:00"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_enqueue_both_schedules_rejected(self, client: AsyncClient):
        """Test that ready_at and delay_seconds are mutually exclusive."""
        response = await client.post(
            "/v1/tasks",
            json={
                "task_type": "echo",
                "ready_at": "2030-01-01T00:00:00+00:00",
                "delay_seconds": 5,
            },
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_enqueue_negative_delay_rejected(self, client: AsyncClient):
        response = await client.post("/v1/tasks", json={"delay_seconds": -1})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_enqueue_huge_delay_rejected(self, client: AsyncClient):
        """Test that a delay beyond the supported range is a client error."""
        response = await client.post("/v1/tasks", json={"delay_seconds": 1e20})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_enqueue_max_delay_accepted(self, client: AsyncClient):
        response = await client.post("/v1/tasks", json={"delay_seconds": MAX_DELAY_SECONDS})

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_queue_stats(self, client: AsyncClient):
        """Test queue statistics after submissions."""
        await client.post("/v1/tasks", json={"task_type": "echo"})
        await client.post(
            "/v1/tasks",
            json={"task_type": "echo", "ready_at": "2099-01-01T00:00:00+00:00"},
        )

        response = await client.get("/v1/queue/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["depth"] == 2
        assert data["due"] == 1
        assert data["leased"] == 0


class TestHealthAPI:
    """Integration tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"] == "healthy"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_readiness_check(self, client: AsyncClient):
        """Test readiness check endpoint."""
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"ready": True}

    @pytest.mark.asyncio
    async def test_liveness_check(self, client: AsyncClient):
        """Test liveness check endpoint."""
        response = await client.get("/live")

        assert response.status_code == 200
        assert response.json() == {"alive": True}

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client: AsyncClient):
        """Test Prometheus metrics endpoint."""
        await client.post("/v1/tasks", json={"task_type": "echo"})

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "readyq_tasks_enqueued_total" in response.text
