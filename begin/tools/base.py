"""Tool capability contract and the set of tools a pipeline stage draws from."""

from dataclasses import dataclass, replace
from typing import Any, Awaitable, Protocol

from begin.engine.stream import FileRecord

from .concat import concat, write_sourcemaps
from .docs import render_docs
from .images import optimize_images
from .markup import compile_templates, minify_markup
from .scripts import minify_scripts
from .styles import compile_styles, minify_styles


class Tool(Protocol):
    """A file transform: records in, records out, optionally async.

    Failures are raised as :class:`~begin.utils.exceptions.ToolError`; the
    owning stream turns them into its error state.
    """

    def __call__(
        self, records: list[FileRecord], **options: Any
    ) -> list[FileRecord] | Awaitable[list[FileRecord]]: ...


@dataclass(frozen=True)
class ToolSet:
    """The transforms used by the pipeline stages.

    ``transpile``, ``annotate`` and ``autoprefix`` have no bundled
    implementation; a stage skips them while they are ``None``.
    """

    minify_markup: Tool = minify_markup
    concat: Tool = concat
    compile_templates: Tool = compile_templates
    transpile: Tool | None = None
    annotate: Tool | None = None
    minify_scripts: Tool = minify_scripts
    compile_styles: Tool = compile_styles
    autoprefix: Tool | None = None
    minify_styles: Tool = minify_styles
    optimize_images: Tool = optimize_images
    write_sourcemaps: Tool = write_sourcemaps
    render_docs: Tool = render_docs

    def override(self, **tools: Tool | None) -> "ToolSet":
        return replace(self, **tools)
