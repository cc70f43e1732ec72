"""
Task handlers registry and built-in handlers.

Handlers must be idempotent: delivery is at-least-once, so a task may be
handled again after a crash or an expired lease.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from readyq.types.task import TaskContext, TaskResult

logger = logging.getLogger(__name__)

# Type alias for task handler functions
TaskHandler = Callable[[TaskContext], Awaitable[TaskResult]]

# Handler registry
_handlers: dict[str, TaskHandler] = {}


def register_handler(task_type: str) -> Callable[[TaskHandler], TaskHandler]:
    """
    Decorator to register a task handler.

    Args:
        task_type: The task type this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("send_email")
        async def handle_send_email(context: TaskContext) -> TaskResult:
            ...
    """
    def decorator(handler: TaskHandler) -> TaskHandler:
        _handlers[task_type] = handler
        logger.debug(f"Registered handler for task type: {task_type}")
        return handler
    return decorator


def get_handler(task_type: str) -> TaskHandler | None:
    """Get the handler for a task type, or None."""
    return _handlers.get(task_type)


def list_handlers() -> list[str]:
    """List all registered task types."""
    return list(_handlers.keys())


# ============================================================================
# Built-in task handlers
# ============================================================================


@register_handler("echo")
async def handle_echo(context: TaskContext) -> TaskResult:
    """Return the payload unchanged."""
    return TaskResult(success=True, output={"echo": context.payload})


@register_handler("sleep")
async def handle_sleep(context: TaskContext) -> TaskResult:
    """
    Sleep for ``payload["duration_seconds"]`` (default 1).
    """
    payload = context.payload if isinstance(context.payload, dict) else {}
    duration = payload.get("duration_seconds", 1)
    await asyncio.sleep(duration)
    return TaskResult(success=True, output={"slept_for": duration})


@register_handler("failing_task")
async def handle_failing_task(context: TaskContext) -> TaskResult:
    """
    Handler that always fails - for exercising retry and discard.
    """
    return TaskResult(
        success=False,
        error=f"Intentional failure on attempt {context.attempt}",
    )


async def execute_task(context: TaskContext) -> TaskResult:
    """
    Run the handler registered for the task's type.

    Unknown task types and handler exceptions become failed results, so
    they flow through the retry policy like any other failure.

    Args:
        context: The task context.

    Returns:
        TaskResult from the handler.
    """
    task_type = context.task.task_type
    handler = get_handler(task_type)

    if handler is None:
        logger.error(f"No handler for task type: {task_type}")
        return TaskResult(
            success=False,
            error=f"No handler registered for task type: {task_type}",
        )

    try:
        return await handler(context)
    except Exception as e:
        logger.exception("Handler raised exception")
        return TaskResult(success=False, error=f"Handler exception: {e}")
