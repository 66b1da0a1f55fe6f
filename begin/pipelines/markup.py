"""``html`` stage: minified markup copied to the client destination."""

from __future__ import annotations

from begin.engine.context import EngineContext
from begin.engine.renderer import RenderedFile
from begin.engine.stream import Stream
from begin.pipelines.base import clean_stale


async def build_html(ctx: EngineContext) -> list[RenderedFile]:
    sources = ctx.files.html.src
    destination = ctx.dest()
    clean_stale(ctx, sources, destination)
    stream = Stream.src(sources, ctx.root, label="html").pipe(
        ctx.tools.minify_markup, collapse=True
    )
    return await stream.dest(destination, ctx.root)
