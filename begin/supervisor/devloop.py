"""Dev-loop supervisor -- the state machine behind ``server`` and ``demon``.

::

    idle -> building -> watching -> restarting
                                 -> exited

Entering from ``idle`` runs ``build`` (unless excluded or disabled), then
the supervisor wires its watch bindings and starts the subordinate server:

* source changes re-run the matching category task;
* a change to the engine's own entry file, the package manifest or the
  library manifest ends the loop with a :class:`RestartRequest`, after the
  install commands for that manifest ran (fail-stop);
* artifacts written under ``client.dest`` are announced to live-reload
  viewers after a fixed, coalescing debounce;
* the subordinate server exiting ends the loop with its exit code.

The supervisor never terminates the process itself.  The host receives the
:class:`RestartRequest` and decides what to do with it.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel

from begin.core.task.models import WatchEvent
from begin.engine.context import EngineContext
from begin.supervisor.monitor import ServerMonitor
from begin.supervisor.process import COMMAND_NOT_FOUND
from begin.utils.exceptions import ProcessError
from begin.utils.file_utils import relative_to_reference
from begin.utils.logging import get_logger

_GLOB_CHARS = "*?[{"


class SupervisorState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    WATCHING = "watching"
    RESTARTING = "restarting"
    EXITED = "exited"


class RestartRequest(BaseModel):
    """Returned by the supervisor when the engine process should end.

    Attributes:
        exit_code: Status the host should exit with.  ``0`` asks an outer
            process manager to relaunch the engine.
        reason: What ended the loop.
    """

    exit_code: int = 0
    reason: str = ""


def tree(pattern: str) -> str:
    """Turn a directory into a recursive glob; leave globs untouched."""
    if any(ch in pattern for ch in _GLOB_CHARS):
        return pattern
    return os.path.join(pattern, "**", "*")


class DevLoopSupervisor:
    """Drive continuous rebuild, server restarts and live reload.

    Parameters
    ----------
    ctx:
        The engine instance context.
    build_first:
        Run ``build`` before watching (the ``server`` task does, ``demon``
        does not).
    """

    def __init__(self, ctx: EngineContext, build_first: bool = True) -> None:
        self.ctx = ctx
        self.build_first = build_first
        self.state = SupervisorState.IDLE
        self.monitor: ServerMonitor | None = None
        self.logger = get_logger("supervisor.devloop", tag="[server]")
        self._outcome: asyncio.Future[RestartRequest] | None = None
        self._reload_paths: list[str] = []
        self._reload_timer: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> RestartRequest:
        """Run the loop until a restart is requested or the server exits."""
        if self.state is not SupervisorState.IDLE:
            raise RuntimeError(f"Supervisor already ran (state: {self.state.value})")
        self._outcome = asyncio.get_running_loop().create_future()

        if self.build_first and not self.ctx.is_excluded("build"):
            self._transition(SupervisorState.BUILDING)
            result = await self.ctx.scheduler.run_task(self.ctx.qualify("build"))
            if not getattr(result, "success", True):
                self.logger.warning("initial_build_failed")

        self._transition(SupervisorState.WATCHING)
        self._bind_rebuilds()
        self._bind_self_restart()
        await self._start_server()
        self._start_livereload()

        try:
            return await self._outcome
        finally:
            await self._shutdown()

    @property
    def restarting(self) -> bool:
        return self.state in (SupervisorState.RESTARTING, SupervisorState.EXITED)

    # ------------------------------------------------------------------
    # Watch bindings
    # ------------------------------------------------------------------

    def rebuild_bindings(self) -> dict[str, tuple[str, ...]]:
        """Map each category task (base name) to the globs that rebuild it."""
        files = self.ctx.files
        return {
            "html": files.html.src,
            "scripts": (*files.scripts.src, *files.templates.src, *files.scripts.lib),
            "styles": (
                *files.styles.main,
                *(tree(p) for p in files.styles.include_src),
                *(tree(p) for p in files.styles.include_lib),
            ),
            "images": files.images.src,
        }

    def _bind_rebuilds(self) -> None:
        for base, patterns in self.rebuild_bindings().items():
            if patterns:
                self.ctx.scheduler.watch(patterns, self._rebuilder(base))

    def _rebuilder(self, base: str) -> Callable[[WatchEvent], Any]:
        name = self.ctx.qualify(base)

        def rebuild(event: WatchEvent) -> Any:
            if self.state is not SupervisorState.WATCHING:
                return None
            self.logger.info("rebuild_triggered", task=name, path=event.path)
            return self.ctx.scheduler.run_task(name)

        rebuild.__name__ = f"rebuild_{base}"
        return rebuild

    def _bind_self_restart(self) -> None:
        dev = self.ctx.config.dev
        watch = self.ctx.scheduler.watch
        watch((dev.entry,), self._on_entry_changed)
        watch((dev.manifest,), self._on_manifest_changed)
        watch((dev.lib_manifest,), self._on_lib_manifest_changed)

    # ------------------------------------------------------------------
    # Self-restart paths
    # ------------------------------------------------------------------

    def _on_entry_changed(self, event: WatchEvent) -> None:
        if self.restarting:
            return
        self.logger.info(f"{event.path} changed, reloading server...")
        self._request_restart(0, "entry_changed")

    def _on_manifest_changed(self, event: WatchEvent) -> None:
        if self.restarting:
            return
        self._transition(SupervisorState.RESTARTING)
        self.logger.info(f"{event.path} changed, installing packages...")
        dev = self.ctx.config.dev
        code = self._run_chain(dev.install, dev.prune)
        self._request_restart(code, "manifest_changed")

    async def _on_lib_manifest_changed(self, event: WatchEvent) -> None:
        if self.restarting:
            return
        self._transition(SupervisorState.RESTARTING)
        self.logger.info(f"{event.path} changed, installing packages...")
        dev = self.ctx.config.dev
        code = self._run_chain(dev.lib_install)
        if code == 0:
            code = await self._run_detached_build()
        self._request_restart(code, "lib_manifest_changed")

    def _run_chain(self, *commands: Sequence[str]) -> int:
        """Run *commands* synchronously, stopping at the first failure."""
        for command in commands:
            code = self.ctx.process_manager.run(command, cwd=str(self.ctx.root))
            if code != 0:
                self.logger.error("install_failed", command=" ".join(command), status=code)
                return code
        return 0

    async def _run_detached_build(self) -> int:
        command = [*self.ctx.config.dev.engine, self.ctx.qualify("build")]
        try:
            handle = await self.ctx.process_manager.spawn(command, cwd=str(self.ctx.root))
        except ProcessError as exc:
            self.logger.error("build_spawn_failed", error=str(exc))
            return COMMAND_NOT_FOUND
        return await handle.wait()

    def _request_restart(self, exit_code: int, reason: str, final: bool = False) -> None:
        if self._outcome is None or self._outcome.done():
            return
        self._transition(SupervisorState.EXITED if final else SupervisorState.RESTARTING)
        self.logger.info("restart_requested", exit_code=exit_code, reason=reason)
        self._outcome.set_result(RestartRequest(exit_code=exit_code, reason=reason))

    # ------------------------------------------------------------------
    # Subordinate server
    # ------------------------------------------------------------------

    async def _start_server(self) -> None:
        server = self.ctx.config.server
        self.monitor = ServerMonitor(
            [*server.command, server.main],
            self.ctx.process_manager,
            self.ctx.scheduler,
            watch=server.watch,
            cwd=str(self.ctx.root),
        )
        self.monitor.on("restart", lambda _: self.logger.info("app restarted!"))
        self.monitor.on("crash", lambda code: self.logger.warning("app crashed!", status=code))
        self.monitor.on("exit", self._on_server_exit)
        try:
            await self.monitor.start()
        except ProcessError as exc:
            self.logger.error("server_start_failed", error=str(exc))
            self._request_restart(COMMAND_NOT_FOUND, "server_unavailable", final=True)
            return
        self.logger.info("app started on port", port=self.ctx.config.port)

    def _on_server_exit(self, code: int | None) -> None:
        if self.restarting:
            return
        self.logger.info("app exited!", status=code)
        self._request_restart(code or 0, "server_exited", final=True)

    # ------------------------------------------------------------------
    # Live reload
    # ------------------------------------------------------------------

    def reload_reference(self) -> str:
        """Directory the notified paths are relative to: ``root/<port>``."""
        port = self.ctx.config.port
        return str(self.ctx.path(str(port))) if port is not None else str(self.ctx.root)

    def _start_livereload(self) -> None:
        if self._outcome is not None and self._outcome.done():
            return
        self.ctx.start()
        pattern = os.path.join(self.ctx.config.client.dest, "**", "*")
        self.ctx.scheduler.watch((pattern,), self._on_artifact_changed)

    def _on_artifact_changed(self, event: WatchEvent) -> None:
        if self.restarting:
            return
        self.logger.debug("livereload initiated", path=event.path)
        path = relative_to_reference(self.ctx.path(event.path), self.reload_reference())
        if path not in self._reload_paths:
            self._reload_paths.append(path)
        if self._reload_timer is not None:
            self._reload_timer.cancel()
        self._reload_timer = asyncio.get_running_loop().call_later(
            self.ctx.settings.livereload_delay, self._flush_reload
        )

    def _flush_reload(self) -> None:
        files, self._reload_paths = self._reload_paths, []
        self._reload_timer = None
        if files and self.ctx.livereload is not None:
            self.ctx.livereload.notify(files)

    # ----- Internal helpers -------------------------------------------------

    def _transition(self, state: SupervisorState) -> None:
        if state is self.state:
            return
        self.logger.debug("supervisor_state", previous=self.state.value, state=state.value)
        self.state = state

    async def _shutdown(self) -> None:
        if self._reload_timer is not None:
            self._reload_timer.cancel()
            self._reload_timer = None
        if self.monitor is not None:
            await self.monitor.stop()
        self.ctx.stop()
