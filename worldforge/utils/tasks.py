"""
Safe asyncio task creation with error logging.

Fire-and-forget coroutines (the API kicking the generation worker)
otherwise lose their exceptions silently.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)

# Strong references so scheduled tasks are not garbage-collected mid-flight
_background_tasks: set[asyncio.Task] = set()


def safe_create_task(coro, *, name: str = None) -> asyncio.Task:
    """Create an asyncio task whose failure is logged with a traceback.

    Args:
        coro: The coroutine to schedule.
        name: Optional human-readable task name for log messages.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    task.add_done_callback(_log_task_exception)
    return task


def _log_task_exception(task: asyncio.Task) -> None:
    """Done-callback that logs unhandled task exceptions."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error(
            "Background task '%s' failed: %s",
            task.get_name(),
            exc,
            exc_info=exc,
        )
