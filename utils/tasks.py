"""
Task utilities for managing asyncio background operations.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from utils.logging import get_logger

logger = get_logger(__name__)


def spawn(
    coro: Coroutine[Any, Any, Any],
    registry: set[asyncio.Task[Any]] | None = None,
    *,
    name: str | None = None,
) -> asyncio.Task[Any]:
    """
    Spawn a coroutine as a background task.

    The task logs its own failure when it finishes. If ``registry`` is given
    the task is kept in it until done, so an owner can cancel and await
    everything it started during shutdown.

    Args:
        coro: The coroutine to spawn as a task
        registry: Optional set tracking live tasks
        name: Optional task name for logs

    Returns:
        The created asyncio task
    """
    task = asyncio.create_task(coro, name=name)
    if registry is not None:
        registry.add(task)
        task.add_done_callback(registry.discard)
    task.add_done_callback(_log_task_exception)
    return task


def _log_task_exception(task: asyncio.Task[Any]) -> None:
    """Log exceptions from completed tasks."""
    if task.cancelled():
        logger.debug("Task %s cancelled", task.get_name())
        return
    exc = task.exception()
    if exc:
        logger.error(
            "Task %s failed with exception", task.get_name(), exc_info=exc
        )


async def cancel_and_wait(tasks: set[asyncio.Task[Any]]) -> None:
    """Cancel every task in ``tasks`` and wait for all of them to finish."""
    pending = [t for t in tasks if not t.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    tasks.clear()
