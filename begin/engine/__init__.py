"""Execution engine -- runs task bodies, plans, and file streams.

Public API::

    from begin.engine import (
        ExecutionPipeline,
        FileRecord,
        FileRenderer,
        PipelineResult,
        RenderedFile,
        Stream,
        TaskExecutor,
        TaskResult,
    )
"""

from begin.engine.executor import TaskExecutor, TaskResult
from begin.engine.pipeline import ExecutionPipeline, PipelineResult
from begin.engine.renderer import FileRenderer, RenderedFile
from begin.engine.stream import FileRecord, Stream

__all__ = [
    "ExecutionPipeline",
    "FileRecord",
    "FileRenderer",
    "PipelineResult",
    "RenderedFile",
    "Stream",
    "TaskExecutor",
    "TaskResult",
]
