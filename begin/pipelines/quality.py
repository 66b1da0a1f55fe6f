"""``lint``, ``test`` and ``autotest`` stages.

The linter and the test runner are external commands run through the
process-manager capability with inherited stdio, so their reports reach the
terminal as they are produced.
"""

from __future__ import annotations

import asyncio
import os

from begin.engine.context import EngineContext
from begin.engine.stream import expand
from begin.utils.exceptions import StageError
from begin.utils.logging import get_logger

logger = get_logger("pipelines.quality")


def lint_targets(ctx: EngineContext) -> list[str]:
    """Client scripts, server sources and tests that exist on disk."""
    patterns = [
        *ctx.files.scripts.src,
        *ctx.config.server.watch,
        *ctx.config.test.watch,
    ]
    return [os.path.join(base, relative) for base, relative in expand(patterns, ctx.root)]


def run_lint(ctx: EngineContext) -> int:
    """Lint the project sources and return the linter's status.

    Findings are reported but never fail the task.
    """
    targets = lint_targets(ctx)
    if not targets:
        logger.info("lint_skipped", reason="no files")
        return 0
    code = ctx.process_manager.run([*ctx.config.lint.command, *targets], cwd=str(ctx.root))
    if code == 0:
        logger.info("lint_clean", files=len(targets))
    else:
        logger.warning("lint_findings", files=len(targets), status=code)
    return code


def coverage_command(ctx: EngineContext) -> list[str]:
    """Coverage wrapper instrumenting the server sources around the runner."""
    config = ctx.config
    includes = [f"--include={pattern}" for pattern in config.server.watch]
    return [*config.test.coverage, *includes, *config.test.command, config.test.main]


def run_tests(ctx: EngineContext) -> int:
    code = ctx.process_manager.run(coverage_command(ctx), cwd=str(ctx.root))
    if code != 0:
        raise StageError("test", f"test run exited with status {code}")
    logger.info("tests_passed")
    return code


async def watch_tests(ctx: EngineContext) -> None:
    """Re-run ``test`` whenever server or test sources change.  Never returns."""
    patterns = [*ctx.config.server.watch, *ctx.config.test.watch]
    ctx.scheduler.watch(patterns, (ctx.qualify("test"),))
    logger.info("autotest_watching", patterns=patterns)
    await asyncio.Event().wait()
