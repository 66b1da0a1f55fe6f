"""``scripts`` stage: one minified bundle with a source map.

The bundle is assembled from three streams, in this order:

1. library scripts concatenated into ``libs.js``;
2. view templates, minified and compiled into ``templates.js``, a script
   that fills the template cache keyed by template path;
3. the client scripts, transpiled and annotated when those tools are set.
"""

from __future__ import annotations

from begin.engine.context import EngineContext
from begin.engine.renderer import RenderedFile
from begin.engine.stream import Stream
from begin.pipelines.base import pipe_optional

LIBS_BUNDLE = "libs.js"
TEMPLATES_BUNDLE = "templates.js"


def library_stream(ctx: EngineContext) -> Stream:
    return Stream.src(ctx.files.scripts.lib, ctx.root, label="scripts:lib").pipe(
        ctx.tools.concat, name=LIBS_BUNDLE
    )


def template_stream(ctx: EngineContext) -> Stream:
    return (
        Stream.src(ctx.files.templates.src, ctx.root, label="scripts:templates")
        .pipe(ctx.tools.minify_markup, collapse=True)
        .pipe(
            ctx.tools.compile_templates,
            filename=TEMPLATES_BUNDLE,
            module=ctx.config.client.templates.module,
            standalone=True,
        )
    )


def source_stream(ctx: EngineContext) -> Stream:
    stream = Stream.src(ctx.files.scripts.src, ctx.root, label="scripts:src")
    stream = pipe_optional(stream, ctx.tools.transpile, "transpile")
    return pipe_optional(stream, ctx.tools.annotate, "annotate", single_quotes=True)


async def build_scripts(ctx: EngineContext) -> list[RenderedFile]:
    scripts = ctx.config.client.scripts
    bundle = (
        Stream.merge(
            library_stream(ctx),
            template_stream(ctx),
            source_stream(ctx),
            label="scripts",
        )
        .pipe(ctx.tools.concat, name=scripts.dest)
        .pipe(ctx.tools.minify_scripts)
        .pipe(ctx.tools.write_sourcemaps, directory=".")
    )
    return await bundle.dest(ctx.dest(scripts.cwd), ctx.root)
