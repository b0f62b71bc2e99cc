"""
Background task runner for async podcast generation.
Runs each pipeline as a detached asyncio task, one worker per task id.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)


class TaskRunner:
    """Manages background task execution for podcast generation."""

    def __init__(self, max_concurrent_tasks: int = 2):
        """
        Initialize the task runner.

        Args:
            max_concurrent_tasks: Maximum number of pipelines executing at once;
                further submissions wait for a free slot
        """
        self.max_concurrent_tasks = max_concurrent_tasks
        self._slots = asyncio.Semaphore(max_concurrent_tasks)
        self._running_tasks: Dict[str, asyncio.Task] = {}
        self._executing: set = set()
        logger.info(f"TaskRunner initialized with max_concurrent_tasks={max_concurrent_tasks}")

    def submit_task(
        self,
        task_id: str,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> asyncio.Task:
        """
        Schedule a coroutine function to run in the background.

        Must be called from inside a running event loop.

        Raises:
            ValueError: If a worker for this task id is already scheduled
        """
        if task_id in self._running_tasks:
            raise ValueError(f"Task {task_id} is already running")

        task = asyncio.create_task(self._monitor_task(task_id, func, *args, **kwargs), name=f"podcast-task-{task_id}")
        self._running_tasks[task_id] = task

        logger.info(f"Task {task_id} submitted for background execution")
        return task

    async def _monitor_task(self, task_id: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Wait for a slot, run the task and clean up when complete."""
        try:
            async with self._slots:
                self._executing.add(task_id)
                result = await func(*args, **kwargs)
                logger.info(f"Task {task_id} completed successfully")
                return result
        except asyncio.CancelledError:
            logger.warning(f"Task {task_id} was cancelled")
            raise
        except Exception:
            # The pipeline records its own failure; this only keeps the crash visible.
            logger.exception(f"Task {task_id} failed with an unhandled error")
        finally:
            self._executing.discard(task_id)
            self._running_tasks.pop(task_id, None)

    def is_task_running(self, task_id: str) -> bool:
        """Check if a task is currently scheduled or running."""
        return task_id in self._running_tasks

    def get_running_task_count(self) -> int:
        """Get the number of tasks currently holding a slot."""
        return len(self._executing)

    def can_accept_new_task(self) -> bool:
        """Check if a new task would start without waiting for a slot."""
        return self.get_running_task_count() < self.max_concurrent_tasks

    def get_queue_status(self) -> dict:
        """
        Get current queue status information.

        Returns:
            Dict containing queue status metrics
        """
        active_count = self.get_running_task_count()
        return {
            "max_concurrent_tasks": self.max_concurrent_tasks,
            "active_tasks": active_count,
            "waiting_tasks": len(self._running_tasks) - active_count,
            "available_slots": self.max_concurrent_tasks - active_count,
            "task_ids": list(self._running_tasks.keys()),
        }

    def get_active_tasks(self) -> List[dict]:
        return [
            {"task_id": task_id, "executing": task_id in self._executing}
            for task_id, task in self._running_tasks.items()
            if not task.done()
        ]

    async def wait_for(self, task_id: str) -> None:
        """Await a scheduled task if it is still known to the runner."""
        task = self._running_tasks.get(task_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding work and wait for it to unwind."""
        logger.info("Shutting down TaskRunner")
        pending = [task for task in self._running_tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} running task(s) during shutdown")
            await asyncio.gather(*pending, return_exceptions=True)
