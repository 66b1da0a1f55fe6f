"""Engine instance context.

One :class:`EngineContext` is created per engine invocation and handed to
every pipeline stage and to the dev-loop supervisor.  It owns the resolved
configuration, the file-set snapshot and the collaborator capabilities, so
two engines in one process (e.g. under test) never share a socket or a
watcher.
"""

from __future__ import annotations

from pathlib import Path

from begin.api.livereload import LiveReload, LiveReloadServer
from begin.config import Settings, settings as default_settings
from begin.core.config.models import Configuration
from begin.core.paths import FileSets, build_files
from begin.core.task.exclusion import is_excluded, qualify
from begin.core.task.scheduler import Scheduler
from begin.supervisor.process import ProcessManager, SubprocessManager
from begin.tools.base import ToolSet
from begin.utils.logging import get_logger

logger = get_logger("engine.context")


class EngineContext:
    """Shared state of one engine instance with an explicit lifecycle.

    Parameters
    ----------
    config:
        The resolved configuration.
    scheduler:
        Scheduler capability the tasks are registered on.
    tools:
        Transform tools used by the pipeline stages.
    process_manager:
        Runs installs and spawns child processes.
    livereload:
        Live-reload capability.  A :class:`LiveReloadServer` is created on
        :meth:`start` when none is given.
    settings:
        Process settings (live-reload port and debounce delay).
    """

    def __init__(
        self,
        config: Configuration,
        scheduler: Scheduler,
        tools: ToolSet | None = None,
        process_manager: ProcessManager | None = None,
        livereload: LiveReload | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.config = config
        self.files: FileSets = build_files(config)
        self.scheduler = scheduler
        self.tools = tools or ToolSet()
        self.process_manager = process_manager or SubprocessManager()
        self.livereload = livereload
        self.settings = settings or default_settings
        self.exclusions: frozenset[str] = frozenset()
        self.started = False

    # ------------------------------------------------------------------
    # Names & paths
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path:
        return Path(self.config.root)

    def qualify(self, base: str) -> str:
        return qualify(self.config.prefix, base)

    def is_excluded(self, base: str) -> bool:
        return is_excluded(self.qualify(base), self.exclusions, self.config.prefix)

    def path(self, *parts: str) -> Path:
        """Resolve *parts* against the project root."""
        return self.root.joinpath(*[part for part in parts if part])

    def dest(self, category_cwd: str = "") -> str:
        """``client.dest`` joined with a category ``cwd``, relative to the root."""
        dest = Path(self.config.client.dest)
        return str(dest / category_cwd) if category_cwd else str(dest)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the live-reload capability; calling it twice is harmless."""
        if self.started:
            return
        if self.livereload is None:
            self.livereload = LiveReloadServer()
        self.livereload.listen(self.settings.livereload_port)
        self.started = True
        logger.info("engine_started", root=str(self.root), prefix=self.config.prefix)

    def stop(self) -> None:
        if self.started and self.livereload is not None:
            self.livereload.close()
        close = getattr(self.scheduler, "close", None)
        if callable(close):
            close()
        self.started = False
        logger.info("engine_stopped", root=str(self.root))
