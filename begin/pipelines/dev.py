"""``dev`` stage: keep a ``demon`` engine process alive.

Dependencies are installed once, then a fresh engine runs ``demon``.  A
child that exits with status 0 asked to be restarted (its own
configuration changed) and is spawned again; any other status ends the
loop and is handed to the host as a :class:`RestartRequest`.
"""

from __future__ import annotations

from begin.engine.context import EngineContext
from begin.supervisor.devloop import RestartRequest
from begin.supervisor.process import COMMAND_NOT_FOUND
from begin.utils.exceptions import ProcessError
from begin.utils.logging import get_logger

logger = get_logger("pipelines.dev")


async def run_dev(ctx: EngineContext) -> RestartRequest:
    dev = ctx.config.dev
    cwd = str(ctx.root)
    code = ctx.process_manager.run(dev.install, cwd=cwd)
    if code != 0:
        logger.error("dev_install_failed", status=code)
        return RestartRequest(exit_code=code, reason="install_failed")

    command = [*dev.engine, ctx.qualify("demon")]
    generation = 0
    while True:
        generation += 1
        try:
            handle = await ctx.process_manager.spawn(command, cwd=cwd)
        except ProcessError as exc:
            logger.error("dev_spawn_failed", error=str(exc))
            return RestartRequest(exit_code=COMMAND_NOT_FOUND, reason="spawn_failed")
        logger.info("dev_child_started", generation=generation, pid=handle.pid)
        code = await handle.wait()
        if code != 0:
            logger.info("dev_child_exited", generation=generation, status=code)
            return RestartRequest(exit_code=code, reason="child_exited")
        logger.info("dev_child_restarting", generation=generation)
