"""``docs`` and ``changelog`` stages."""

from __future__ import annotations

import os
from pathlib import Path

from begin.engine.context import EngineContext
from begin.engine.renderer import RenderedFile
from begin.engine.stream import Stream
from begin.tools.changelog import update_changelog


def doc_sources(ctx: EngineContext) -> list[str]:
    """``docs.src``, then server, test and client script sources."""
    config = ctx.config
    return [
        *config.docs.src,
        *config.server.watch,
        *config.test.watch,
        *ctx.files.scripts.src,
    ]


async def generate_docs(ctx: EngineContext) -> list[RenderedFile]:
    """Render the doc blocks of the project sources into ``docs.dest``."""
    docs = ctx.config.docs
    stream = Stream.src(doc_sources(ctx), ctx.root, label="docs").pipe(
        ctx.tools.render_docs,
        filename=os.path.basename(docs.dest),
        template_path=ctx.path(docs.template),
    )
    return await stream.dest(os.path.dirname(docs.dest) or ".", ctx.root)


def generate_changelog(ctx: EngineContext) -> Path:
    changelog = ctx.config.changelog
    return update_changelog(ctx.root, filename=changelog.dest, preset=changelog.preset)
