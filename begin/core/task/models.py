"""Task-related data models for the build orchestration engine.

Defines the task descriptor handed to the scheduler, task lifecycle states,
the execution plan computed for a requested task, and watch bindings.
"""

from enum import Enum
from typing import Any, Callable, Union

from pydantic import BaseModel, ConfigDict, Field

import uuid


TaskBody = Callable[[], Any]


class TaskStatus(str, Enum):
    """Lifecycle states for a single task invocation."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskDescriptor(BaseModel):
    """A named build step with its upstream dependencies.

    Attributes:
        name: The exposed (qualified) task name.
        depends_on: Qualified names that must complete before this task runs.
        body: Callable producing the task's effect, sync or async.  ``None``
            for pure aggregation tasks such as ``build``.
        excluded: ``True`` when the body is an exclusion stub.
        doc: One-line description shown by ``begin --list``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    depends_on: tuple[str, ...] = ()
    body: TaskBody | None = None
    excluded: bool = False
    doc: str = ""


class TaskPlan(BaseModel):
    """The dependency closure of a requested task, grouped into waves.

    Attributes:
        run_id: Identifier attached to every log event of the run.
        target: The task that was requested.
        execution_order: Groups of task names; tasks within the same group
            can run concurrently, groups run sequentially.
    """

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    target: str
    execution_order: list[list[str]] = []

    def task_names(self) -> list[str]:
        return [name for wave in self.execution_order for name in wave]


class WatchEvent(BaseModel):
    """A file-system change delivered to a watch binding."""

    model_config = ConfigDict(frozen=True)

    type: str
    path: str


WatchAction = Union[tuple[str, ...], Callable[[WatchEvent], Any]]


class WatchBinding(BaseModel):
    """Associates file-system triggers with the tasks or callback they re-invoke."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    patterns: tuple[str, ...]
    action: WatchAction

    @property
    def task_names(self) -> tuple[str, ...]:
        return self.action if isinstance(self.action, tuple) else ()
