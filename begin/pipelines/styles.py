"""``styles`` stage: compiled, prefixed and minified stylesheet."""

from __future__ import annotations

from begin.engine.context import EngineContext
from begin.engine.renderer import RenderedFile
from begin.engine.stream import Stream
from begin.pipelines.base import pipe_optional


def include_paths(ctx: EngineContext) -> list[str]:
    """Library include directories first, then the source ones."""
    styles = ctx.files.styles
    return [*styles.include_lib, *styles.include_src]


async def build_styles(ctx: EngineContext) -> list[RenderedFile]:
    styles = ctx.config.client.styles
    stream = Stream.src(ctx.files.styles.main, ctx.root, label="styles").pipe(
        ctx.tools.compile_styles,
        include_paths=include_paths(ctx),
        root=str(ctx.root),
    )
    stream = pipe_optional(stream, ctx.tools.autoprefix, "autoprefix")
    stream = (
        stream.pipe(ctx.tools.concat, name=styles.dest)
        .pipe(ctx.tools.minify_styles)
        .pipe(ctx.tools.write_sourcemaps, directory=".")
    )
    return await stream.dest(ctx.dest(styles.cwd), ctx.root)
