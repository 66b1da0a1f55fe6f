from __future__ import annotations

from begin.engine.context import EngineContext
from begin.engine.renderer import RenderedFile
from begin.engine.stream import Stream
from begin.pipelines.base import clean_stale


async def build_images(ctx: EngineContext) -> list[RenderedFile]:
    """Optimize the client images into ``client.dest/images.cwd``."""
    sources = ctx.files.images.src
    destination = ctx.dest(ctx.config.client.images.cwd)
    clean_stale(ctx, sources, destination)
    stream = Stream.src(sources, ctx.root, label="images").pipe(ctx.tools.optimize_images)
    return await stream.dest(destination, ctx.root)
