"""Engine facade: resolve options, register the task graph, run tasks."""

from __future__ import annotations

import asyncio
from typing import Any

from begin.api.livereload import LiveReload
from begin.config import Settings
from begin.core.config import Configuration, resolve
from begin.core.task.exclusion import compute_exclusions
from begin.core.task.registry import TaskRegistry
from begin.core.task.scheduler import Scheduler, TaskScheduler
from begin.engine.context import EngineContext
from begin.engine.pipeline import PipelineResult
from begin.pipelines.graph import build_task_graph
from begin.supervisor.process import ProcessManager
from begin.supervisor.watcher import FileWatcher
from begin.tools.base import ToolSet
from begin.utils.logging import get_logger

logger = get_logger("engine")


class Engine:
    """One engine instance mounted on a scheduler.

    Parameters
    ----------
    options:
        Caller options; any subset of the configuration tree, or a resolved
        :class:`Configuration`.
    scheduler:
        Scheduler capability.  Defaults to an in-process
        :class:`TaskScheduler` watching the project root.
    tools, process_manager, livereload, settings:
        Optional capabilities passed to the :class:`EngineContext`.
    """

    def __init__(
        self,
        options: Any = None,
        scheduler: Scheduler | None = None,
        *,
        tools: ToolSet | None = None,
        process_manager: ProcessManager | None = None,
        livereload: LiveReload | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.config: Configuration = resolve(options)
        if scheduler is None:
            scheduler = TaskScheduler(watcher=FileWatcher(self.config.root))
        self.scheduler = scheduler
        self.context = EngineContext(
            self.config,
            scheduler,
            tools=tools,
            process_manager=process_manager,
            livereload=livereload,
            settings=settings,
        )
        self.registry = TaskRegistry(
            scheduler,
            warn_exclusions=self.config.warn_exclusions,
            prefix=self.config.prefix,
        )

    def register(self) -> TaskRegistry:
        """Build the task graph, apply exclusions and define every task."""
        descriptors = build_task_graph(self.context)
        exclusions = compute_exclusions(
            [d.name for d in descriptors],
            exclude=self.config.exclude,
            only=self.config.only,
            prefix=self.config.prefix,
        )
        self.context.exclusions = exclusions
        self.registry.exclusions = exclusions
        self.registry.register(descriptors)
        return self.registry

    async def run(self, name: str) -> Any:
        """Run the task registered as *name* (an exposed, qualified name)."""
        return await self.scheduler.run_task(name)

    def start(self, *names: str) -> list[PipelineResult]:
        """Run *names* in order on a fresh event loop, then stop the engine."""

        async def _run_all() -> list[PipelineResult]:
            try:
                return [await self.run(name) for name in names]
            finally:
                self.stop()

        return asyncio.run(_run_all())

    def stop(self) -> None:
        self.context.stop()


def begin(scheduler: Scheduler | None = None, options: Any = None, **capabilities: Any) -> Engine:
    """Create an engine on *scheduler* and register its tasks."""
    engine = Engine(options, scheduler, **capabilities)
    engine.register()
    logger.info(
        "engine_registered",
        tasks=len(engine.registry),
        prefix=engine.config.prefix,
        excluded=sorted(engine.context.exclusions),
    )
    return engine
