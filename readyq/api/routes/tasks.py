"""
Task submission and queue inspection routes.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from readyq.api.routes.deps import QueueClientDep
from readyq.constants import API_V1_PREFIX
from readyq.exceptions import ScoreRangeError, StoreUnavailable
from readyq.observability.metrics import get_metrics
from readyq.types.api import EnqueueTaskRequest, EnqueueTaskResponse, QueueStatsResponse
from readyq.types.task import Task, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Tasks"])


@router.post(
    "/tasks",
    response_model=EnqueueTaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue a task",
    description="Store a task, claimable from ready_at (or now + delay_seconds).",
)
async def enqueue_task(request: EnqueueTaskRequest, client: QueueClientDep) -> EnqueueTaskResponse:
    """
    Enqueue a new task.

    Args:
        request: Task submission.
        client: Queue client.

    Returns:
        EnqueueTaskResponse with the task id and stored score.
    """
    if request.ready_at is not None:
        ready_at = request.ready_at
        if ready_at.tzinfo is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="ready_at must include a timezone",
            )
    else:
        ready_at = utc_now() + timedelta(seconds=request.delay_seconds or 0)

    task = Task(task_type=request.task_type, payload=request.payload)

    try:
        score = await client.enqueue(task, ready_at)
    except ScoreRangeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message
        ) from e
    except StoreUnavailable as e:
        get_metrics().record_store_error(e.operation or "add")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
        ) from e

    logger.info(
        "Task submitted",
        extra={"task_id": task.id, "task_type": task.task_type, "ready_at": ready_at.isoformat()},
    )
    return EnqueueTaskResponse(
        id=task.id,
        task_type=task.task_type,
        ready_at=ready_at,
        score=score,
    )


@router.get(
    "/queue/stats",
    response_model=QueueStatsResponse,
    summary="Queue statistics",
    description="Entry counts of the queue and its lease set.",
)
async def queue_stats(client: QueueClientDep) -> QueueStatsResponse:
    """Report queue depth, due entries and held leases."""
    try:
        depth = await client.depth()
        due = await client.due_count()
        leased = await client.leased_count()
    except StoreUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
        ) from e

    get_metrics().update_queue_depth(client.queue_name, depth)
    return QueueStatsResponse(
        queue=client.queue_name,
        depth=depth,
        due=due,
        leased=leased,
        leasing_enabled=client.leasing_enabled,
    )
