"""Task graph registry -- mounts task descriptors on a scheduler capability."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from begin.core.task.exclusion import filter_descriptor
from begin.core.task.models import TaskDescriptor
from begin.core.task.scheduler import Scheduler
from begin.utils.exceptions import ConfigurationError, TaskNotFoundError
from begin.utils.logging import get_logger

logger = get_logger("task.registry")


class TaskRegistry:
    """Declarative registry for the engine's named tasks.

    The registry never executes anything.  It applies the exclusion filter,
    checks that every dependency resolves, and hands each descriptor to the
    scheduler, which owns dependency ordering, cycle detection and
    invocation.

    Typical lifecycle::

        registry = TaskRegistry(scheduler, exclusions, warn_exclusions=True)
        registry.register(descriptors)
        await scheduler.run_task("build")
    """

    def __init__(
        self,
        scheduler: Scheduler,
        exclusions: frozenset[str] = frozenset(),
        warn_exclusions: bool = False,
        prefix: str | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.exclusions = exclusions
        self.warn_exclusions = warn_exclusions
        self.prefix = prefix
        self._tasks: dict[str, TaskDescriptor] = {}

    # ------------------------------------------------------------------
    # Registration & lookup
    # ------------------------------------------------------------------

    def register(self, descriptors: Iterable[TaskDescriptor]) -> None:
        """Filter *descriptors* and define them on the scheduler.

        Raises :class:`ConfigurationError` when a dependency is neither
        registered (now or earlier) nor excluded.  Nothing is defined on
        the scheduler in that case.
        """
        effective = [
            filter_descriptor(d, self.exclusions, self.warn_exclusions, self.prefix)
            for d in descriptors
        ]
        known = set(self._tasks) | {d.name for d in effective}
        for descriptor in effective:
            dangling = [dep for dep in descriptor.depends_on if dep not in known]
            if dangling:
                raise ConfigurationError(
                    f"Task '{descriptor.name}' depends on unknown task(s): "
                    f"{', '.join(dangling)}"
                )

        for descriptor in effective:
            if descriptor.name in self._tasks:
                logger.warning("task_overwritten", task=descriptor.name)
            self._tasks[descriptor.name] = descriptor
            self.scheduler.define_task(
                descriptor.name,
                descriptor.depends_on,
                descriptor.body,
            )
            logger.debug(
                "task_registered",
                task=descriptor.name,
                excluded=descriptor.excluded,
            )

        logger.info(
            "tasks_registered",
            count=len(effective),
            excluded=sorted(d.name for d in effective if d.excluded),
        )

    def get(self, name: str) -> TaskDescriptor:
        """Return the descriptor registered under *name*.

        Raises :class:`TaskNotFoundError` if no such task exists.
        """
        task = self._tasks.get(name)
        if task is None:
            raise TaskNotFoundError(name)
        return task

    def is_excluded(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and task.excluded

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        return list(self._tasks)

    def describe(self) -> list[dict[str, Any]]:
        """Return one row per task for listings."""
        return [
            {
                "name": task.name,
                "depends_on": list(task.depends_on),
                "excluded": task.excluded,
                "doc": task.doc,
            }
            for task in self._tasks.values()
        ]

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, name: str) -> bool:
        return name in self._tasks
