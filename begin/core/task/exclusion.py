"""Exclusion filter -- decides which tasks run their real body.

The exclusion set is computed once from the configuration:

* ``exclude`` when it is present at all (an explicit empty list counts),
* otherwise every task name not listed in ``only`` (after qualifying),
* otherwise nothing.

Excluded tasks are still registered, as stubs, so that their dependents
resolve.  A stub never runs the real body; with ``warn_exclusions`` it logs
one warning per invocation.
"""

from __future__ import annotations

from collections.abc import Iterable

from begin.core.task.models import TaskBody, TaskDescriptor
from begin.utils.logging import get_logger

logger = get_logger("task.exclusion")

PREFIX_SEPARATOR = "_"


def qualify(prefix: str | None, base: str) -> str:
    """Return the exposed name of task *base* under *prefix*."""
    return f"{prefix}{PREFIX_SEPARATOR}{base}" if prefix else base


def compute_exclusions(
    all_names: Iterable[str],
    exclude: Iterable[str] | None = None,
    only: Iterable[str] | None = None,
    prefix: str | None = None,
) -> frozenset[str]:
    """Return the set of excluded task names.

    *all_names* are the qualified names of every declared task.  ``exclude``
    always wins; ``only`` is consulted solely when ``exclude`` is ``None``.
    """
    if exclude is not None:
        return frozenset(exclude)
    if only is not None:
        kept = {qualify(prefix, name) for name in only}
        return frozenset(name for name in all_names if name not in kept)
    return frozenset()


def is_excluded(name: str, exclusions: frozenset[str], prefix: str | None = None) -> bool:
    """Match *name* against *exclusions* by qualified and by base name."""
    if not exclusions:
        return False
    candidates = {name, qualify(prefix, name)}
    head = f"{prefix}{PREFIX_SEPARATOR}" if prefix else ""
    if head and name.startswith(head):
        candidates.add(name[len(head):])
    return not candidates.isdisjoint(exclusions)


def make_stub(name: str, warn: bool) -> TaskBody:
    """Build the no-op body registered in place of an excluded task."""

    def excluded_task() -> None:
        if warn:
            logger.warning(f"Task <{name}> has been explicitly excluded!", task=name)

    excluded_task.__name__ = f"excluded_{name}"
    return excluded_task


def filter_descriptor(
    descriptor: TaskDescriptor,
    exclusions: frozenset[str],
    warn_exclusions: bool = False,
    prefix: str | None = None,
) -> TaskDescriptor:
    """Return the descriptor that is actually registered for *descriptor*."""
    if not is_excluded(descriptor.name, exclusions, prefix):
        return descriptor
    logger.debug("task_excluded", task=descriptor.name)
    return TaskDescriptor(
        name=descriptor.name,
        body=make_stub(descriptor.name, warn_exclusions),
        excluded=True,
        doc=f"(excluded) {descriptor.doc}".strip(),
    )
