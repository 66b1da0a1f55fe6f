"""Helpers shared by the pipeline stages."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from begin.engine.context import EngineContext
from begin.engine.renderer import FileRenderer
from begin.engine.stream import Stream, expand
from begin.tools.base import Tool
from begin.utils.logging import get_logger

logger = get_logger("pipelines")


def pipe_optional(stream: Stream, tool: Tool | None, step: str, **options: Any) -> Stream:
    """Add *tool* to *stream* unless the tool set leaves it unset.

    A skipped step is logged so the output is known to lack it.
    """
    if tool is None:
        logger.info("step_skipped", stage=stream.label, step=step, reason="no tool configured")
        return stream
    return stream.pipe(tool, **options)


def clean_stale(ctx: EngineContext, patterns: Iterable[str], destination: str) -> list[str]:
    """Delete the artifacts the sources matched by *patterns* were written to."""
    relatives = [relative for _, relative in expand(patterns, ctx.root)]
    return FileRenderer(ctx.path(destination)).remove(relatives)
