"""Execution pipeline -- runs a task plan wave by wave.

The :class:`ExecutionPipeline` consumes a :class:`TaskPlan` and:

1. Iterates through the ``execution_order`` groups sequentially.
2. Within each group, runs tasks concurrently via :func:`asyncio.gather`.
3. Skips tasks whose dependencies did not complete successfully.
4. Collects all results into a :class:`PipelineResult`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from begin.core.task.models import TaskDescriptor, TaskPlan, TaskStatus
from begin.engine.executor import TaskExecutor, TaskResult
from begin.utils.logging import get_logger

logger = get_logger("engine.pipeline")


class PipelineResult(BaseModel):
    """Aggregated result of running a :class:`TaskPlan`.

    Attributes:
        target: The requested task.
        task_results: Mapping of task name -> :class:`TaskResult`.
        success: ``True`` only when *every* task completed successfully.
    """

    target: str
    task_results: dict[str, TaskResult] = {}
    success: bool = True

    @property
    def output(self) -> Any:
        """The value returned by the target task's body."""
        result = self.task_results.get(self.target)
        return result.output if result else None


class ExecutionPipeline:
    """Top-level runner for a task plan.

    Parameters
    ----------
    executor:
        The :class:`TaskExecutor` responsible for running individual bodies.
    """

    def __init__(self, executor: TaskExecutor) -> None:
        self.executor = executor
        self.logger = get_logger("engine.pipeline")

    async def run(self, plan: TaskPlan, tasks: Mapping[str, TaskDescriptor]) -> PipelineResult:
        """Execute every task of *plan* respecting ``execution_order``."""
        self.logger.info(
            "pipeline_start",
            run_id=plan.run_id,
            target=plan.target,
            waves=len(plan.execution_order),
            tasks=plan.task_names(),
        )

        task_results: dict[str, TaskResult] = {}

        for group_idx, group in enumerate(plan.execution_order):
            runnable: list[str] = []
            for name in group:
                missing = [
                    dep for dep in tasks[name].depends_on
                    if dep not in task_results or not task_results[dep].success
                ]
                if missing:
                    self.logger.warning("dependency_not_met", task=name, dependencies=missing)
                    task_results[name] = TaskResult(
                        task_name=name,
                        status=TaskStatus.SKIPPED,
                        error=f"Dependency '{missing[0]}' did not complete successfully",
                    )
                else:
                    runnable.append(name)

            if not runnable:
                continue

            outcomes: list[TaskResult] = await asyncio.gather(
                *(self.executor.execute_task(tasks[name]) for name in runnable)
            )
            for result in outcomes:
                task_results[result.task_name] = result

            self.logger.debug(
                "pipeline_group_complete",
                group=group_idx,
                succeeded=sum(1 for r in outcomes if r.success),
                failed=sum(1 for r in outcomes if not r.success),
            )

        failed = [name for name, r in task_results.items() if not r.success]
        pipeline_result = PipelineResult(
            target=plan.target,
            task_results=task_results,
            success=not failed,
        )
        self.logger.info(
            "pipeline_complete",
            run_id=plan.run_id,
            target=plan.target,
            success=pipeline_result.success,
            failed=failed,
        )
        return pipeline_result
