import asyncio
import json
from pathlib import Path

import pytest
from PIL import Image

from begin.config import Settings
from begin.core.config import resolve
from begin.core.task.models import WatchBinding, WatchEvent
from begin.engine.context import EngineContext
from begin.supervisor.watcher import FileWatcher
from begin.utils.globs import match_any


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class FakeHandle:
    """Process handle whose exit is decided by the test."""

    def __init__(self, command, code=None):
        self.command = list(command)
        self.pid = 4242
        self._done = asyncio.get_running_loop().create_future()
        self.terminated = False
        if code is not None:
            self.finish(code)

    @property
    def returncode(self):
        return self._done.result() if self._done.done() else None

    async def wait(self):
        return await asyncio.shield(self._done)

    def terminate(self):
        self.terminated = True
        self.finish(-15)

    def finish(self, code):
        if not self._done.done():
            self._done.set_result(code)


class FakeProcessManager:
    """Records every command.

    ``run`` codes are keyed by the first word of a command, ``spawn`` codes by
    the last one (a single code, or a list consumed per spawn).
    """

    def __init__(self, run_codes=None, spawn_codes=None, missing=()):
        self.run_codes = dict(run_codes or {})
        self.spawn_codes = dict(spawn_codes or {})
        self.missing = set(missing)
        self.calls = []
        self.handles = []

    def run(self, command, cwd=None):
        self.calls.append(("run", list(command)))
        return self.run_codes.get(command[0], 0)

    async def spawn(self, command, cwd=None):
        from begin.utils.exceptions import ProcessError

        self.calls.append(("spawn", list(command)))
        if command[0] in self.missing:
            raise ProcessError(command, "executable not found")
        codes = self.spawn_codes.get(command[-1])
        code = codes.pop(0) if isinstance(codes, list) and codes else codes
        handle = FakeHandle(command, code if isinstance(code, int) else None)
        self.handles.append(handle)
        return handle

    def commands(self, kind=None):
        return [command for k, command in self.calls if kind is None or k == kind]


class FakeResult:
    success = True
    output = None


class FakeScheduler:
    """Scheduler capability that records calls; watch triggers fire on demand."""

    def __init__(self):
        self.defined = {}
        self.runs = []
        self.bindings = []

    def define_task(self, name, dependencies=(), body=None, doc=""):
        self.defined[name] = (tuple(dependencies), body)

    async def run_task(self, name):
        self.runs.append(name)
        return FakeResult()

    def watch(self, patterns, action):
        binding = WatchBinding(patterns=tuple(patterns), action=action)
        self.bindings.append(binding)
        return binding

    async def trigger(self, path, type="modified"):
        """Deliver a change of *path* to every matching binding and await it."""
        event = WatchEvent(type=type, path=path)
        for binding in list(self.bindings):
            if not match_any(binding.patterns, path):
                continue
            if binding.task_names:
                for name in binding.task_names:
                    await self.run_task(name)
                continue
            outcome = binding.action(event)
            if asyncio.iscoroutine(outcome) or isinstance(outcome, asyncio.Future):
                await outcome


class FakeLiveReload:
    def __init__(self):
        self.port = None
        self.notifications = []
        self.closed = False

    def listen(self, port):
        self.port = port

    def notify(self, files):
        self.notifications.append(list(files))

    def close(self):
        self.closed = True


class QuietWatcher(FileWatcher):
    """A FileWatcher that never starts an observer thread; tests call ``emit``."""

    def start(self):
        pass


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    """A small client/server project laid out with the default options."""
    client = tmp_path / "src" / "client"
    write(client / "index.html", "<html>\n  <body>\n    <h1>Hello</h1>\n  </body>\n</html>\n")
    write(client / "scripts" / "a.js", "var answer = 42;\n")
    write(client / "views" / "home.html", "<div>\n  home\n</div>\n")
    write(client / "styles" / "styles.scss", '@import "vars";\nbody { color: $brand; }\n')
    write(client / "styles" / "_vars.scss", "$brand: #336699;\n")
    write(tmp_path / "src" / "server" / "index.js", "/** Server entry. */\nmodule.exports = 1;\n")
    write(tmp_path / "test" / "spec.js", "/** Specs. */\n")
    write(tmp_path / "package.json", json.dumps({"name": "demo", "version": "1.2.0"}))
    write(tmp_path / "bower.json", json.dumps({"name": "demo"}))
    write(tmp_path / "begin.yaml", "client:\n  dest: public\n")

    images = client / "images"
    images.mkdir(parents=True)
    Image.new("RGB", (16, 16), (200, 30, 30)).save(images / "logo.png")
    return tmp_path


@pytest.fixture
def settings():
    return Settings(port=None, livereload_port=35999, livereload_delay=0.01)


@pytest.fixture
def process_manager():
    return FakeProcessManager()


@pytest.fixture
def livereload():
    return FakeLiveReload()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def make_context(project, fake_scheduler, process_manager, livereload, settings):
    """Build an EngineContext over the sample project with fake collaborators."""

    def factory(options=None, scheduler=None, **overrides):
        config = resolve({"root": str(project), **(options or {})})
        return EngineContext(
            config,
            scheduler or fake_scheduler,
            process_manager=overrides.get("process_manager", process_manager),
            livereload=overrides.get("livereload", livereload),
            settings=overrides.get("settings", settings),
            tools=overrides.get("tools"),
        )

    return factory
