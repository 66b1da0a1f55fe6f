"""Restart-on-change supervisor for the subordinate server process.

:class:`ServerMonitor` runs the server command, restarts it when one of its
watched sources changes, and reports what happens through four events:

``start``    the first process came up
``restart``  the process was replaced after a source change
``crash``    the process exited with a non-zero status; the monitor waits
             for the next source change before starting it again
``exit``     the process exited cleanly, or the monitor was stopped

Handlers receive the exit code (``None`` for ``start``/``restart``).
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Callable, Sequence
from typing import Any

from begin.core.task.models import WatchEvent
from begin.core.task.scheduler import Scheduler
from begin.supervisor.process import ProcessHandle, ProcessManager
from begin.utils.logging import get_logger

logger = get_logger("supervisor.monitor")

EVENTS = ("start", "restart", "crash", "exit")

Listener = Callable[[int | None], Any]


class ServerMonitor:
    """Keeps one subordinate server process alive.

    Parameters
    ----------
    command:
        Full command line of the server (interpreter plus entry point).
    process_manager:
        Capability used to spawn the process.
    scheduler:
        Used to bind the ``watch`` patterns to restarts.
    watch:
        Globs whose changes restart the server.
    cwd:
        Working directory of the server process.
    """

    def __init__(
        self,
        command: Sequence[str],
        process_manager: ProcessManager,
        scheduler: Scheduler,
        watch: Sequence[str] = (),
        cwd: str | None = None,
    ) -> None:
        self.command = list(command)
        self.process_manager = process_manager
        self.scheduler = scheduler
        self.watch_patterns = tuple(watch)
        self.cwd = cwd
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._handle: ProcessHandle | None = None
        self._reapers: set[asyncio.Task] = set()
        self._stopped = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, listener: Listener) -> "ServerMonitor":
        if event not in EVENTS:
            raise ValueError(f"Unknown monitor event: {event}")
        self._listeners[event].append(listener)
        return self

    def _emit(self, event: str, code: int | None = None) -> None:
        for listener in self._listeners[event]:
            outcome = listener(code)
            if inspect.isawaitable(outcome):
                asyncio.ensure_future(outcome)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.watch_patterns:
            self.scheduler.watch(self.watch_patterns, self._on_source_change)
        await self._spawn()
        self._emit("start")

    async def restart(self) -> None:
        if self._stopped:
            return
        self._retire()
        await self._spawn()
        logger.debug("server_restarted", pid=self._handle.pid if self._handle else None)
        self._emit("restart")

    async def stop(self) -> int | None:
        """Terminate the process and emit ``exit``; return its exit code."""
        if self._stopped:
            return None
        self._stopped = True
        handle = self._retire()
        code = await handle.wait() if handle is not None else None
        self._emit("exit", code)
        return code

    # ----- Internal helpers -------------------------------------------------

    async def _on_source_change(self, event: WatchEvent) -> None:
        logger.info("server_source_changed", path=event.path)
        await self.restart()

    async def _spawn(self) -> None:
        handle = await self.process_manager.spawn(self.command, cwd=self.cwd)
        self._handle = handle
        reaper = asyncio.ensure_future(self._reap(handle))
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    def _retire(self) -> ProcessHandle | None:
        handle = self._handle
        if handle is not None:
            handle.terminate()
        self._handle = None
        return handle

    async def _reap(self, handle: ProcessHandle) -> None:
        code = await handle.wait()
        if handle is not self._handle:
            # Retired by restart or stop.
            return
        self._handle = None
        if code == 0:
            self._stopped = True
            self._emit("exit", code)
        else:
            self._emit("crash", code)
