"""The fixed task graph of the engine.

Every name is qualified with the configured prefix both where a task is
declared and where it is referenced as a dependency.
"""

from __future__ import annotations

from functools import partial

from begin.core.task.models import TaskDescriptor
from begin.engine.context import EngineContext
from begin.pipelines.dev import run_dev
from begin.pipelines.documents import generate_changelog, generate_docs
from begin.pipelines.images import build_images
from begin.pipelines.markup import build_html
from begin.pipelines.quality import run_lint, run_tests, watch_tests
from begin.pipelines.scripts import build_scripts
from begin.pipelines.styles import build_styles
from begin.supervisor.devloop import DevLoopSupervisor

TASK_NAMES = (
    "html",
    "lint",
    "scripts",
    "styles",
    "images",
    "build",
    "server",
    "demon",
    "dev",
    "test",
    "autotest",
    "docs",
    "changelog",
)


def supervise(ctx: EngineContext, build_first: bool):
    return DevLoopSupervisor(ctx, build_first=build_first).run()


def build_task_graph(ctx: EngineContext) -> list[TaskDescriptor]:
    """Return the descriptors of every engine task, in declaration order."""
    q = ctx.qualify

    def task(base, body=None, depends_on=(), doc=""):
        return TaskDescriptor(
            name=q(base),
            depends_on=tuple(q(dep) for dep in depends_on),
            body=body,
            doc=doc,
        )

    return [
        task("html", partial(build_html, ctx), doc="Minify markup into the client destination"),
        task("lint", partial(run_lint, ctx), doc="Lint client, server and test scripts"),
        task(
            "scripts",
            partial(build_scripts, ctx),
            depends_on=["lint"],
            doc="Bundle libraries, templates and client scripts",
        ),
        task("styles", partial(build_styles, ctx), doc="Compile and minify stylesheets"),
        task("images", partial(build_images, ctx), doc="Optimize images"),
        task(
            "build",
            depends_on=["html", "styles", "scripts", "images"],
            doc="Build every client artifact",
        ),
        task(
            "server",
            partial(supervise, ctx, True),
            doc="Build, then serve and rebuild on change",
        ),
        task("demon", partial(supervise, ctx, False), doc="Serve and rebuild on change"),
        task("dev", partial(run_dev, ctx), doc="Install, then keep a demon process alive"),
        task(
            "test",
            partial(run_tests, ctx),
            depends_on=["lint"],
            doc="Run the test suite under coverage",
        ),
        task("autotest", partial(watch_tests, ctx), doc="Re-run tests on change"),
        task("docs", partial(generate_docs, ctx), doc="Generate docs from doc comments"),
        task("changelog", partial(generate_changelog, ctx), doc="Prepend a changelog section"),
    ]
