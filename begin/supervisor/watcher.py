"""File watch primitive backed by watchdog.

A single recursive observer is scheduled on the project root; every event
is matched against the registered bindings and delivered to their callbacks
on the observer thread.  Callers marshal the callback onto their own event
loop (see :meth:`TaskScheduler.watch`).
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from begin.core.task.models import WatchBinding, WatchEvent
from begin.utils.globs import match_any, normalise
from begin.utils.logging import get_logger

logger = get_logger("supervisor.watcher")

# Event types that signal a content change.
_CHANGE_EVENTS = {"created", "modified", "deleted", "moved"}


class FileWatcher:
    """Dispatch file-system events under *root* to watch bindings.

    Parameters
    ----------
    root:
        Directory observed recursively; bindings match paths relative to it.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self._bindings: list[tuple[WatchBinding, Callable[[WatchEvent], object]]] = []
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    def add(self, binding: WatchBinding, callback: Callable[[WatchEvent], object]) -> None:
        with self._lock:
            self._bindings.append((binding, callback))
        self.start()

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(_Handler(self), str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("watcher_started", root=str(self.root))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("watcher_stopped", root=str(self.root))

    def emit(self, event: WatchEvent) -> int:
        """Deliver *event* to every matching binding; return the match count."""
        with self._lock:
            bindings = list(self._bindings)
        delivered = 0
        for binding, callback in bindings:
            if match_any(binding.patterns, event.path):
                callback(event)
                delivered += 1
        return delivered

    def relative(self, path: str | bytes) -> str:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        return normalise(os.path.relpath(path, self.root))


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: FileWatcher) -> None:
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return
        path = event.dest_path if event.event_type == "moved" else event.src_path
        relative = self.watcher.relative(path)
        logger.debug("watch_event", type=event.event_type, path=relative)
        self.watcher.emit(WatchEvent(type=event.event_type, path=relative))
