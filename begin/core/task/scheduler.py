"""Task scheduling with topological sort.

:class:`TaskScheduler` is the in-process implementation of the scheduler
capability the engine registers its tasks against.  It stores task
definitions, computes the dependency closure of a requested task, groups it
into *waves* of independent tasks (Kahn's algorithm), and runs the waves
through an :class:`~begin.engine.pipeline.ExecutionPipeline`.  It also owns
the watch bindings that re-invoke tasks on file-system changes.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict, deque
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from begin.core.task.models import (
    TaskBody,
    TaskDescriptor,
    TaskPlan,
    WatchAction,
    WatchBinding,
    WatchEvent,
)
from begin.engine.executor import TaskExecutor
from begin.engine.pipeline import ExecutionPipeline, PipelineResult
from begin.utils.exceptions import CyclicDependencyError, TaskNotFoundError
from begin.utils.logging import get_logger

if TYPE_CHECKING:
    from begin.supervisor.watcher import FileWatcher

logger = get_logger("task.scheduler")


@runtime_checkable
class Scheduler(Protocol):
    """The capability the registry and the dev-loop supervisor consume."""

    def define_task(
        self,
        name: str,
        dependencies: Iterable[str],
        body: TaskBody | None,
    ) -> None: ...

    async def run_task(self, name: str) -> Any: ...

    def watch(self, patterns: Iterable[str], action: WatchAction) -> WatchBinding: ...


class TaskScheduler:
    """Stores task definitions and runs them in dependency order.

    Parameters
    ----------
    watcher:
        File watch primitive used by :meth:`watch`.  Created on first use
        (rooted at the current directory) when not supplied.
    executor:
        Optional :class:`TaskExecutor`; one is created automatically.
    """

    def __init__(
        self,
        watcher: FileWatcher | None = None,
        executor: TaskExecutor | None = None,
    ) -> None:
        self.executor = executor or TaskExecutor()
        self.pipeline = ExecutionPipeline(self.executor)
        self.watcher = watcher
        self._tasks: dict[str, TaskDescriptor] = {}
        self._bindings: list[WatchBinding] = []
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Definition
    # ------------------------------------------------------------------

    def define_task(
        self,
        name: str,
        dependencies: Iterable[str] = (),
        body: TaskBody | None = None,
        doc: str = "",
    ) -> None:
        if name in self._tasks:
            logger.warning("task_redefined", task=name)
        task = TaskDescriptor(
            name=name,
            depends_on=tuple(dependencies),
            body=body,
            doc=doc,
        )
        self._tasks[name] = task
        logger.debug("task_defined", task=name, depends_on=list(task.depends_on))

    def get(self, name: str) -> TaskDescriptor:
        task = self._tasks.get(name)
        if task is None:
            raise TaskNotFoundError(name)
        return task

    def names(self) -> list[str]:
        return list(self._tasks)

    def __contains__(self, name: str) -> bool:
        return name in self._tasks

    # ------------------------------------------------------------------
    # Planning & running
    # ------------------------------------------------------------------

    def plan(self, name: str) -> TaskPlan:
        """Build the :class:`TaskPlan` for running *name* and its dependencies.

        Raises :class:`TaskNotFoundError` for unknown names (including
        dangling dependencies) and :class:`CyclicDependencyError` when the
        closure contains a cycle.
        """
        closure = self._closure(name)
        execution_order = self._topological_sort(closure)
        plan = TaskPlan(target=name, execution_order=execution_order)
        logger.debug(
            "schedule_complete",
            target=name,
            total_tasks=len(closure),
            waves=len(execution_order),
        )
        return plan

    async def run_task(self, name: str) -> PipelineResult:
        """Run *name* after its dependencies and return the aggregated result."""
        plan = self.plan(name)
        return await self.pipeline.run(plan, self._tasks)

    def start(self, *names: str) -> list[PipelineResult]:
        """Synchronously run *names* in order on a fresh event loop."""

        async def _run_all() -> list[PipelineResult]:
            try:
                return [await self.run_task(name) for name in names]
            finally:
                self.close()

        return asyncio.run(_run_all())

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def watch(self, patterns: Iterable[str], action: WatchAction) -> WatchBinding:
        """Bind *patterns* to task names or a callback.

        Must be called from inside the running event loop; events arriving
        on the watcher thread are dispatched back onto that loop.
        """
        binding = WatchBinding(patterns=tuple(patterns), action=action)
        loop = asyncio.get_running_loop()
        if self.watcher is None:
            from begin.supervisor.watcher import FileWatcher

            self.watcher = FileWatcher(".")
        self.watcher.add(
            binding,
            lambda event: loop.call_soon_threadsafe(self.dispatch, binding, event),
        )
        self._bindings.append(binding)
        logger.debug("watch_bound", patterns=list(binding.patterns))
        return binding

    def dispatch(self, binding: WatchBinding, event: WatchEvent) -> None:
        """Deliver *event* to *binding* on the event loop thread."""
        if binding.task_names:
            for name in binding.task_names:
                logger.info("watch_triggered", task=name, path=event.path)
                self._spawn(self.run_task(name))
            return
        try:
            outcome = binding.action(event)
        except Exception:
            logger.exception("watch_callback_error", path=event.path)
            return
        if inspect.isawaitable(outcome):
            self._spawn(outcome)

    def close(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
        for task in list(self._background):
            task.cancel()

    # ----- Internal helpers -------------------------------------------------

    def _spawn(self, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._background.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("watch_action_failed", error=str(task.exception()))

    def _closure(self, name: str) -> dict[str, TaskDescriptor]:
        closure: dict[str, TaskDescriptor] = {}
        pending: deque[str] = deque([name])
        while pending:
            current = pending.popleft()
            if current in closure:
                continue
            task = self.get(current)
            closure[current] = task
            pending.extend(task.depends_on)
        return closure

    @staticmethod
    def _topological_sort(tasks: dict[str, TaskDescriptor]) -> list[list[str]]:
        """Return waves of task names via Kahn's algorithm.

        Each wave lists tasks whose dependencies all sit in earlier waves.
        Raises :class:`CyclicDependencyError` if the graph has a cycle.
        """
        in_degree: dict[str, int] = {name: 0 for name in tasks}
        dependents: dict[str, list[str]] = defaultdict(list)

        for task in tasks.values():
            for dep in task.depends_on:
                in_degree[task.name] += 1
                dependents[dep].append(task.name)

        current_wave = [name for name, degree in in_degree.items() if degree == 0]
        waves: list[list[str]] = []
        processed = 0

        while current_wave:
            waves.append(current_wave)
            next_wave: list[str] = []
            for name in current_wave:
                processed += 1
                for dependent in dependents[name]:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        next_wave.append(dependent)
            current_wave = next_wave

        if processed != len(tasks):
            stuck = sorted(name for name, degree in in_degree.items() if degree > 0)
            raise CyclicDependencyError(
                f"Cyclic dependency detected among tasks: {', '.join(stuck)}"
            )

        return waves
