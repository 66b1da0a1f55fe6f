"""Task executor -- runs the body of a single registered task.

The :class:`TaskExecutor` is the bridge between the execution plan and the
task bodies declared by the registry.  For every :class:`TaskDescriptor` it:

1. Serialises invocations of the same task name.
2. Calls the body and awaits it when it returns an awaitable.
3. Returns a :class:`TaskResult` summarising the outcome.

Failures never propagate out of :meth:`TaskExecutor.execute_task`: a failing
pipeline must not halt sibling tasks or the watch loop.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import traceback
from collections import defaultdict
from typing import Any

from pydantic import BaseModel

from begin.core.task.models import TaskDescriptor, TaskStatus
from begin.utils.exceptions import BeginError
from begin.utils.logging import get_logger


class TaskResult(BaseModel):
    """Outcome of executing a single task.

    Attributes:
        task_name: The task's exposed name.
        output: Whatever the body returned (artifacts, a restart request...).
        status: Final lifecycle state.
        error: Human-readable error message on failure.
        duration_seconds: Wall-clock time taken to execute.
    """

    task_name: str
    output: Any = None
    status: TaskStatus = TaskStatus.PENDING
    error: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class TaskExecutor:
    """Execute task bodies one descriptor at a time."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.logger = get_logger("engine.executor")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute_task(self, task: TaskDescriptor) -> TaskResult:
        """Execute *task* end-to-end and report the outcome."""
        async with self._locks[task.name]:
            return await self._execute(task)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _execute(self, task: TaskDescriptor) -> TaskResult:
        start = time.monotonic()
        self.logger.info("task_start", task=task.name)

        if task.body is None:
            return self._complete(task, None, start)

        try:
            output = task.body()
            if inspect.isawaitable(output):
                output = await output
        except BeginError as exc:
            return self._fail(task, str(exc), start)
        except Exception as exc:
            self.logger.error(
                "task_unexpected_error",
                task=task.name,
                error=str(exc),
                traceback=traceback.format_exc(),
            )
            return self._fail(task, f"Unexpected error: {exc}", start)

        return self._complete(task, output, start)

    def _complete(self, task: TaskDescriptor, output: Any, start: float) -> TaskResult:
        result = TaskResult(
            task_name=task.name,
            output=output,
            status=TaskStatus.COMPLETED,
            duration_seconds=round(time.monotonic() - start, 4),
        )
        self.logger.info("task_complete", task=task.name, duration=result.duration_seconds)
        return result

    def _fail(self, task: TaskDescriptor, error_msg: str, start: float) -> TaskResult:
        """Log a failed task and return a failure :class:`TaskResult`."""
        duration = round(time.monotonic() - start, 4)
        self.logger.error("task_failed", task=task.name, error=error_msg, duration=duration)
        return TaskResult(
            task_name=task.name,
            status=TaskStatus.FAILED,
            error=error_msg,
            duration_seconds=duration,
        )
