"""Process-manager capability -- synchronous installs and spawned children."""

from __future__ import annotations

import asyncio
import subprocess
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from begin.utils.exceptions import ProcessError
from begin.utils.logging import get_logger

logger = get_logger("supervisor.process")

# Exit status reported when a command cannot be found, as shells do.
COMMAND_NOT_FOUND = 127


@runtime_checkable
class ProcessHandle(Protocol):
    pid: int | None

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    @property
    def returncode(self) -> int | None: ...


@runtime_checkable
class ProcessManager(Protocol):
    def run(self, command: Sequence[str], cwd: str | None = None) -> int: ...

    async def spawn(self, command: Sequence[str], cwd: str | None = None) -> ProcessHandle: ...


class AsyncProcessHandle:
    """Wraps an :class:`asyncio.subprocess.Process`."""

    def __init__(self, process: asyncio.subprocess.Process, command: Sequence[str]) -> None:
        self._process = process
        self.command = list(command)

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def wait(self) -> int:
        return await self._process.wait()

    def terminate(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass


class SubprocessManager:
    """Default :class:`ProcessManager` backed by :mod:`subprocess` and asyncio.

    Child processes inherit stdio so their output reaches the terminal.
    """

    def run(self, command: Sequence[str], cwd: str | None = None) -> int:
        """Run *command* to completion, blocking the caller.

        A missing executable is reported as status 127 rather than raised.
        """
        logger.info("process_run", command=" ".join(command), cwd=cwd)
        try:
            completed = subprocess.run(list(command), cwd=cwd)
        except FileNotFoundError:
            logger.error("process_not_found", command=command[0])
            return COMMAND_NOT_FOUND
        if completed.returncode != 0:
            logger.warning("process_failed", command=" ".join(command), code=completed.returncode)
        return completed.returncode

    async def spawn(self, command: Sequence[str], cwd: str | None = None) -> AsyncProcessHandle:
        """Start *command* without waiting for it.

        Raises :class:`ProcessError` when the executable does not exist.
        """
        try:
            process = await asyncio.create_subprocess_exec(*command, cwd=cwd)
        except FileNotFoundError as exc:
            raise ProcessError(command, "executable not found") from exc
        logger.info("process_spawned", command=" ".join(command), pid=process.pid)
        return AsyncProcessHandle(process, command)
